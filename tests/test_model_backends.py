import os
from types import SimpleNamespace
from unittest import IsolatedAsyncioTestCase, TestCase
from unittest.mock import patch

from app.backend import config
from app.backend.adapters import provider_registry
from app.backend.adapters.local_backend import LocalChatBackend, local_reply
from app.backend.adapters.model_backend import merge_delta, message_text
from app.backend.adapters.openai_backend import OpenAIChatBackend
from app.backend.services.errors import ChatServiceError


_NO_KEYS = {"OPENAI_API_KEY": "", "GOOGLE_API_KEY": "", "GROQ_API_KEY": ""}


class _FakeStream:
	def __init__(self, chunks):
		self._chunks = list(chunks)

	def __aiter__(self):
		return self

	async def __anext__(self):
		if not self._chunks:
			raise StopAsyncIteration
		return self._chunks.pop(0)


class _FakeCompletions:
	def __init__(self, *, response=None, chunks=None, error=None):
		self._response = response
		self._chunks = chunks
		self._error = error
		self.kwargs = None

	async def create(self, **kwargs):
		self.kwargs = kwargs
		if self._error is not None:
			raise self._error
		if kwargs.get("stream"):
			return _FakeStream(self._chunks)
		return self._response


def _fake_client(**kwargs):
	completions = _FakeCompletions(**kwargs)
	return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _chunk(content=None, tool_calls=None):
	delta = SimpleNamespace(content=content, tool_calls=tool_calls)
	return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


class RateLimitError(Exception):
	pass


class OpenAIChatBackendTests(IsolatedAsyncioTestCase):
	def _backend(self, client):
		return OpenAIChatBackend(provider="openai", model="gpt-4o-mini", api_key="k", client=client)

	async def test_invoke_returns_assistant_dict(self) -> None:
		call = SimpleNamespace(id="c1", function=SimpleNamespace(name="web_search", arguments='{"input": "news"}'))
		message = SimpleNamespace(content=None, tool_calls=[call])
		client, completions = _fake_client(response=SimpleNamespace(choices=[SimpleNamespace(message=message)]))
		tools = [{"type": "function", "function": {"name": "web_search"}}]

		reply = await self._backend(client).invoke([{"role": "user", "content": "news?"}], tools=tools)

		self.assertEqual(reply["role"], "assistant")
		self.assertEqual(reply["content"], "")
		self.assertEqual(reply["tool_calls"][0]["function"], {"name": "web_search", "arguments": '{"input": "news"}'})
		self.assertEqual(completions.kwargs["model"], "gpt-4o-mini")
		self.assertEqual(completions.kwargs["tools"], tools)

	async def test_invoke_without_tools_omits_tools(self) -> None:
		message = SimpleNamespace(content="hello", tool_calls=None)
		client, completions = _fake_client(response=SimpleNamespace(choices=[SimpleNamespace(message=message)]))

		reply = await self._backend(client).invoke([{"role": "user", "content": "hi"}])

		self.assertEqual(reply, {"role": "assistant", "content": "hello"})
		self.assertNotIn("tools", completions.kwargs)

	async def test_stream_yields_content_deltas(self) -> None:
		client, completions = _fake_client(
			chunks=[_chunk("Hel"), SimpleNamespace(choices=[]), _chunk(None), _chunk("lo")],
		)

		deltas = [delta async for delta in self._backend(client).stream([{"role": "user", "content": "hi"}])]

		self.assertEqual([delta["content"] for delta in deltas], ["Hel", "lo"])
		self.assertTrue(completions.kwargs["stream"])

	async def test_provider_errors_are_mapped(self) -> None:
		client, _completions = _fake_client(error=RateLimitError("slow down"))
		with self.assertRaises(ChatServiceError) as ctx:
			await self._backend(client).invoke([{"role": "user", "content": "hi"}])
		self.assertEqual(ctx.exception.status_code, 429)

		client, _completions = _fake_client(error=TimeoutError())
		with self.assertRaises(ChatServiceError) as ctx:
			async for _delta in self._backend(client).stream([{"role": "user", "content": "hi"}]):
				pass
		self.assertEqual(ctx.exception.code, "provider_timeout")

	async def test_empty_choices_is_provider_error(self) -> None:
		client, _completions = _fake_client(response=SimpleNamespace(choices=[]))
		with self.assertRaises(ChatServiceError) as ctx:
			await self._backend(client).invoke([{"role": "user", "content": "hi"}])
		self.assertEqual(ctx.exception.code, "provider_error")


class ProviderRegistryTests(TestCase):
	def test_auto_without_keys_resolves_local(self) -> None:
		with patch.dict(os.environ, {"CHAT_PROVIDER_MODE": "auto", **_NO_KEYS}, clear=False):
			backend = provider_registry.resolve_backend()
		self.assertIsInstance(backend, LocalChatBackend)

	def test_auto_prefers_openai_then_google_then_groq(self) -> None:
		with patch.dict(os.environ, {**_NO_KEYS, "GOOGLE_API_KEY": "g", "GROQ_API_KEY": "q"}, clear=False):
			self.assertEqual(provider_registry.resolved_mode("auto"), "google")
		with patch.dict(os.environ, {**_NO_KEYS, "GROQ_API_KEY": "q", "OPENAI_API_KEY": "o"}, clear=False):
			self.assertEqual(provider_registry.resolved_mode("auto"), "openai")

	def test_groq_backend_uses_compatible_endpoint(self) -> None:
		captured = {}

		def fake_client(*, api_key, base_url, timeout_s):
			captured.update(api_key=api_key, base_url=base_url)
			return object()

		env = {"CHAT_PROVIDER_MODE": "groq", **_NO_KEYS, "GROQ_API_KEY": "q", "CHAT_GROQ_MODEL": ""}
		with patch.dict(os.environ, env, clear=False), patch(
			"app.backend.adapters.openai_backend._build_openai_client",
			side_effect=fake_client,
		):
			backend = provider_registry.resolve_backend()

		self.assertEqual(backend.describe(), {"provider": "groq", "model": "openai/gpt-oss-120b"})
		self.assertEqual(captured, {"api_key": "q", "base_url": config.PROVIDER_BASE_URLS["groq"]})

	def test_explicit_provider_without_key_is_unconfigured(self) -> None:
		with patch.dict(os.environ, {"CHAT_PROVIDER_MODE": "openai", **_NO_KEYS}, clear=False):
			with self.assertRaises(ChatServiceError) as ctx:
				provider_registry.resolve_backend()
		self.assertEqual(ctx.exception.status_code, 503)
		self.assertEqual(ctx.exception.code, "provider_unconfigured")

	def test_invalid_mode_is_rejected(self) -> None:
		with patch.dict(os.environ, {"CHAT_PROVIDER_MODE": "claude"}, clear=False):
			with self.assertRaises(ChatServiceError):
				provider_registry.configured_mode()


class LocalBackendTests(IsolatedAsyncioTestCase):
	def test_local_reply_is_deterministic(self) -> None:
		self.assertEqual(local_reply("hello"), "Hey! Good to hear from you. What's on your mind?")
		self.assertEqual(local_reply("how are you"), "I'm doing pretty well, thanks for asking. How about you?")
		self.assertEqual(local_reply("thanks!"), "You're welcome. Anything else you want to chat about?")
		self.assertEqual(local_reply("quantum physics"), "Yeah, I hear you about quantum physics. Tell me a bit more.")

	async def test_stream_chunks_rebuild_invoke_text(self) -> None:
		backend = LocalChatBackend()
		messages = [{"role": "system", "content": "x"}, {"role": "user", "content": "hello"}]

		reply = await backend.invoke(messages)
		chunks = [delta["content"] async for delta in backend.stream(messages)]

		self.assertGreater(len(chunks), 1)
		self.assertEqual("".join(chunks), reply["content"])


class MessageHelperTests(TestCase):
	def test_message_text_handles_part_lists(self) -> None:
		message = {"role": "assistant", "content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}
		self.assertEqual(message_text(message), "ab")
		self.assertEqual(message_text({"role": "assistant", "content": None}), "")

	def test_merge_delta_accumulates_tool_call_fragments(self) -> None:
		message = {"role": "assistant", "content": ""}
		merge_delta(message, {"content": "x", "tool_calls": [{"index": 0, "id": "c1", "name": "web_", "arguments": '{"in'}]})
		merge_delta(message, {"content": "", "tool_calls": [{"index": 0, "name": "search", "arguments": 'put": "q"}'}]})

		self.assertEqual(message["content"], "x")
		self.assertEqual(message["tool_calls"][0]["id"], "c1")
		self.assertEqual(message["tool_calls"][0]["function"], {"name": "web_search", "arguments": '{"input": "q"}'})
