from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from app.backend.adapters.model_backend import ChatMessage, MessageDelta, ModelBackend, ToolSchema
from app.backend.services.errors import ChatServiceError


logger = logging.getLogger(__name__)


def _build_openai_client(*, api_key: str, base_url: str | None, timeout_s: float):
	try:
		from openai import AsyncOpenAI
	except ImportError as exc:
		raise ChatServiceError(
			status_code=503,
			code="provider_unconfigured",
			message="OpenAI SDK not installed. Add 'openai' dependency.",
		) from exc
	return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_s)


def _openai_error(exc: Exception) -> ChatServiceError:
	name = exc.__class__.__name__
	if isinstance(exc, TimeoutError) or name == "APITimeoutError":
		return ChatServiceError(
			status_code=504,
			code="provider_timeout",
			message="Model provider timed out.",
		)
	if name == "RateLimitError":
		return ChatServiceError(
			status_code=429,
			code="provider_rate_limited",
			message="Model provider rate limit reached.",
		)
	return ChatServiceError(
		status_code=502,
		code="provider_error",
		message="Model provider request failed.",
	)


def _tool_call_dict(call: Any) -> Dict[str, Any]:
	function = getattr(call, "function", None)
	return {
		"id": getattr(call, "id", "") or "",
		"type": "function",
		"function": {
			"name": getattr(function, "name", "") or "",
			"arguments": getattr(function, "arguments", "") or "",
		},
	}


def _message_dict(message: Any) -> ChatMessage:
	result: ChatMessage = {"role": "assistant", "content": getattr(message, "content", None) or ""}
	tool_calls = getattr(message, "tool_calls", None) or []
	if tool_calls:
		result["tool_calls"] = [_tool_call_dict(call) for call in tool_calls]
	return result


def _delta_dict(delta: Any) -> MessageDelta:
	parts: List[Dict[str, Any]] = []
	for call in getattr(delta, "tool_calls", None) or []:
		function = getattr(call, "function", None)
		parts.append(
			{
				"index": getattr(call, "index", None),
				"id": getattr(call, "id", None),
				"name": getattr(function, "name", None),
				"arguments": getattr(function, "arguments", None),
			}
		)
	return {"content": getattr(delta, "content", None) or "", "tool_calls": parts}


class OpenAIChatBackend(ModelBackend):
	"""Chat completions over the ``openai`` SDK.

	Google and Groq expose OpenAI-compatible endpoints, so they reuse this
	class with their own ``base_url``.
	"""

	def __init__(
		self,
		*,
		provider: str,
		model: str,
		api_key: str,
		base_url: str | None = None,
		temperature: float = 0.8,
		timeout_s: float = 30.0,
		client: Any = None,
	):
		self.provider = provider
		self.model = model
		self._temperature = temperature
		self._client = client or _build_openai_client(api_key=api_key, base_url=base_url, timeout_s=timeout_s)

	def _request_kwargs(self, messages: Sequence[ChatMessage], tools: Optional[List[ToolSchema]]) -> Dict[str, Any]:
		kwargs: Dict[str, Any] = {
			"model": self.model,
			"messages": list(messages),
			"temperature": self._temperature,
		}
		if tools:
			kwargs["tools"] = tools
		return kwargs

	async def invoke(
		self,
		messages: Sequence[ChatMessage],
		tools: Optional[List[ToolSchema]] = None,
	) -> ChatMessage:
		try:
			response = await self._client.chat.completions.create(**self._request_kwargs(messages, tools))
		except Exception as exc:
			raise _openai_error(exc) from exc
		choices = getattr(response, "choices", None) or []
		if not choices:
			raise ChatServiceError(
				status_code=502,
				code="provider_error",
				message="Model provider returned an empty response.",
			)
		return _message_dict(choices[0].message)

	async def stream(
		self,
		messages: Sequence[ChatMessage],
		tools: Optional[List[ToolSchema]] = None,
	) -> AsyncIterator[MessageDelta]:
		try:
			stream = await self._client.chat.completions.create(
				stream=True,
				**self._request_kwargs(messages, tools),
			)
			async for chunk in stream:
				choices = getattr(chunk, "choices", None) or []
				if not choices:
					continue
				delta = _delta_dict(choices[0].delta)
				if delta["content"] or delta["tool_calls"]:
					yield delta
		except ChatServiceError:
			raise
		except Exception as exc:
			raise _openai_error(exc) from exc
