import asyncio
from unittest import IsolatedAsyncioTestCase, TestCase

from app.backend.adapters.model_backend import ModelBackend
from app.backend.adapters.tool_agent import ToolAgent, parse_tool_argument
from app.backend.services.errors import AgentLimitExceeded
from app.backend.services.stream_reconciler import StreamReconciler
from app.backend.tools.base import ChatTool


def _tool_call(name, arguments, call_id="c1"):
	return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


class _ScriptedBackend(ModelBackend):
	provider = "fake"
	model = "scripted"

	def __init__(self, replies=None, streams=None, delay_s=0.0):
		self._replies = list(replies or [])
		self._streams = list(streams or [])
		self._delay_s = delay_s
		self.tool_schemas = []

	async def invoke(self, messages, tools=None):
		self.tool_schemas.append(tools)
		if self._delay_s:
			await asyncio.sleep(self._delay_s)
		return self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]

	async def stream(self, messages, tools=None):
		for delta in self._streams.pop(0):
			yield delta


class _EchoTool(ChatTool):
	name = "echo"
	description = "Echo the input back."

	async def invoke(self, argument: str) -> str:
		return f"echo:{argument}"


class _BrokenTool(ChatTool):
	name = "broken"
	description = "Always fails."

	async def invoke(self, argument: str) -> str:
		raise RuntimeError("kaput")


_INPUT = [
	{"role": "system", "content": "be nice"},
	{"role": "user", "content": "ping please"},
]


class ParseToolArgumentTests(TestCase):
	def test_argument_shapes(self) -> None:
		self.assertEqual(parse_tool_argument('{"input": "play:Queen"}'), "play:Queen")
		self.assertEqual(parse_tool_argument('{"query": "jazz"}'), "jazz")
		self.assertEqual(parse_tool_argument("pause"), "pause")
		self.assertEqual(parse_tool_argument('"quoted"'), "quoted")
		self.assertEqual(parse_tool_argument({"input": "skip"}), "skip")
		self.assertEqual(parse_tool_argument(None), "")


class ToolAgentInvokeTests(IsolatedAsyncioTestCase):
	async def test_tool_result_is_fed_back_before_answer(self) -> None:
		backend = _ScriptedBackend(
			replies=[
				{"role": "assistant", "content": "", "tool_calls": [_tool_call("echo", '{"input": "ping"}')]},
				{"role": "assistant", "content": "Got echo:ping"},
			]
		)
		agent = ToolAgent(backend, [_EchoTool()])

		result = await agent.invoke(_INPUT)

		self.assertEqual(result[: len(_INPUT)], _INPUT)
		produced = result[len(_INPUT):]
		self.assertEqual([message["role"] for message in produced], ["assistant", "tool", "assistant"])
		self.assertEqual(produced[1]["tool_call_id"], "c1")
		self.assertEqual(produced[1]["content"], "echo:ping")
		self.assertEqual(produced[2]["content"], "Got echo:ping")
		self.assertEqual(backend.tool_schemas[0][0]["function"]["name"], "echo")

	async def test_unknown_and_failing_tools_report_as_text(self) -> None:
		backend = _ScriptedBackend(
			replies=[
				{
					"role": "assistant",
					"content": "",
					"tool_calls": [_tool_call("missing", "{}", "c1"), _tool_call("broken", "x", "c2")],
				},
				{"role": "assistant", "content": "Sorry about that."},
			]
		)
		agent = ToolAgent(backend, [_BrokenTool()])

		result = await agent.invoke(_INPUT)

		tool_messages = [message for message in result if message["role"] == "tool"]
		self.assertEqual(tool_messages[0]["content"], "Tool missing is not available.")
		self.assertEqual(tool_messages[1]["content"], "Tool broken failed: kaput")
		self.assertEqual(result[-1]["content"], "Sorry about that.")

	async def test_iteration_ceiling_raises(self) -> None:
		backend = _ScriptedBackend(
			replies=[{"role": "assistant", "content": "", "tool_calls": [_tool_call("echo", "again")]}],
		)
		agent = ToolAgent(backend, [_EchoTool()], max_iterations=2)

		with self.assertRaises(AgentLimitExceeded):
			await agent.invoke(_INPUT)
		self.assertEqual(len(backend.tool_schemas), 2)

	async def test_wall_clock_ceiling_raises(self) -> None:
		backend = _ScriptedBackend(replies=[{"role": "assistant", "content": "late"}], delay_s=1.0)
		agent = ToolAgent(backend, [_EchoTool()], timeout_s=0.05)

		with self.assertRaises(AgentLimitExceeded):
			await agent.invoke(_INPUT)


class ToolAgentStreamTests(IsolatedAsyncioTestCase):
	async def test_snapshots_reconcile_into_answer_text(self) -> None:
		backend = _ScriptedBackend(
			streams=[
				[
					{"content": "", "tool_calls": [{"index": 0, "id": "c1", "name": "echo", "arguments": '{"inp'}]},
					{"content": "", "tool_calls": [{"index": 0, "id": None, "name": None, "arguments": 'ut": "ping"}'}]},
				],
				[
					{"content": "Hi", "tool_calls": []},
					{"content": " there", "tool_calls": []},
				],
			]
		)
		agent = ToolAgent(backend, [_EchoTool()])
		reconciler = StreamReconciler("snapshot", offset=len(_INPUT))

		fragments = [fragment async for fragment in reconciler.reconcile(agent.stream(_INPUT))]

		self.assertEqual(fragments, ["Hi", " there"])
		self.assertEqual(reconciler.revisions, 0)

	async def test_snapshots_include_tool_result(self) -> None:
		backend = _ScriptedBackend(
			streams=[
				[{"content": "", "tool_calls": [{"index": 0, "id": "", "name": "echo", "arguments": "ping"}]}],
				[{"content": "done", "tool_calls": []}],
			]
		)
		agent = ToolAgent(backend, [_EchoTool()])

		snapshots = [snapshot async for snapshot in agent.stream(_INPUT)]

		final = snapshots[-1]
		tool_message = next(message for message in final if message["role"] == "tool")
		self.assertEqual(tool_message["tool_call_id"], "call_0_0")
		self.assertEqual(tool_message["content"], "echo:ping")
		self.assertEqual(final[-1], {"role": "assistant", "content": "done"})
