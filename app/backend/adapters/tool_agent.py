from __future__ import annotations

import asyncio
import copy
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Sequence

from app.backend.adapters.model_backend import ChatMessage, ModelBackend, merge_delta
from app.backend.logging_config import preview
from app.backend.services.errors import AgentLimitExceeded
from app.backend.tools.base import ChatTool


logger = logging.getLogger(__name__)


def parse_tool_argument(raw: Any) -> str:
	if isinstance(raw, dict):
		value = raw.get("input")
		return value if isinstance(value, str) else json.dumps(raw)
	if not isinstance(raw, str):
		return ""
	text = raw.strip()
	try:
		parsed = json.loads(text)
	except json.JSONDecodeError:
		return text
	if isinstance(parsed, dict):
		value = parsed.get("input")
		if isinstance(value, str):
			return value
		if len(parsed) == 1:
			only = next(iter(parsed.values()))
			if isinstance(only, str):
				return only
		return text
	if isinstance(parsed, str):
		return parsed
	return text


def _finalize_reply(reply: ChatMessage, step: int) -> ChatMessage:
	calls = [call for call in reply.get("tool_calls") or [] if call["function"]["name"]]
	for index, call in enumerate(calls):
		if not call["id"]:
			call["id"] = f"call_{step}_{index}"
	finalized: ChatMessage = {"role": "assistant", "content": reply.get("content") or ""}
	if calls:
		finalized["tool_calls"] = calls
	return finalized


class ToolAgent:
	"""Tool-calling loop over a :class:`ModelBackend`.

	Each step asks the model for a reply with the tool schemas attached. Tool
	calls are executed and fed back as ``tool`` messages until the model
	answers without calling anything. The loop is bounded by a step count
	and a wall-clock ceiling; crossing either raises ``AgentLimitExceeded``.
	"""

	def __init__(
		self,
		backend: ModelBackend,
		tools: Sequence[ChatTool],
		*,
		max_iterations: int = 2,
		timeout_s: float = 30.0,
	):
		self._backend = backend
		self._tools: Dict[str, ChatTool] = {tool.name: tool for tool in tools}
		self._schemas = [tool.schema() for tool in tools]
		self._max_iterations = max(1, int(max_iterations))
		self._timeout_s = float(timeout_s)

	@property
	def tool_names(self) -> List[str]:
		return list(self._tools)

	@property
	def has_tools(self) -> bool:
		return bool(self._tools)

	async def invoke(self, messages: Sequence[ChatMessage]) -> List[ChatMessage]:
		result: List[ChatMessage] = list(messages)
		async for snapshot in self._run(messages, streaming=False):
			result = snapshot
		return result

	async def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[List[ChatMessage]]:
		async for snapshot in self._run(messages, streaming=True):
			yield snapshot

	def _remaining(self, deadline: float) -> float:
		remaining = deadline - asyncio.get_running_loop().time()
		if remaining <= 0:
			raise AgentLimitExceeded(f"Agent exceeded {self._timeout_s:.0f}s execution time.")
		return remaining

	async def _bounded(self, awaitable, deadline: float):
		try:
			return await asyncio.wait_for(awaitable, timeout=self._remaining(deadline))
		except asyncio.TimeoutError as exc:
			raise AgentLimitExceeded(f"Agent exceeded {self._timeout_s:.0f}s execution time.") from exc

	async def _run(self, messages: Sequence[ChatMessage], *, streaming: bool) -> AsyncIterator[List[ChatMessage]]:
		deadline = asyncio.get_running_loop().time() + self._timeout_s
		conversation: List[ChatMessage] = list(messages)
		for step in range(self._max_iterations):
			if streaming:
				reply: ChatMessage = {"role": "assistant", "content": ""}
				deltas = self._backend.stream(conversation, tools=self._schemas).__aiter__()
				while True:
					try:
						delta = await self._bounded(deltas.__anext__(), deadline)
					except StopAsyncIteration:
						break
					merge_delta(reply, delta)
					yield conversation + [copy.deepcopy(reply)]
			else:
				reply = await self._bounded(self._backend.invoke(conversation, tools=self._schemas), deadline)

			reply = _finalize_reply(reply, step)
			conversation.append(reply)
			yield list(conversation)
			calls = reply.get("tool_calls")
			if not calls:
				return
			for call in calls:
				result = await self._bounded(self._run_tool(call), deadline)
				conversation.append(
					{
						"role": "tool",
						"tool_call_id": call["id"],
						"name": call["function"]["name"],
						"content": result,
					}
				)
				yield list(conversation)
		raise AgentLimitExceeded(f"Agent exceeded {self._max_iterations} iterations.")

	async def _run_tool(self, call: Dict[str, Any]) -> str:
		name = call["function"]["name"]
		tool = self._tools.get(name)
		if tool is None:
			logger.warning("Model requested unknown tool", extra={"tool": name})
			return f"Tool {name} is not available."
		argument = parse_tool_argument(call["function"]["arguments"])
		logger.info("Invoking tool", extra={"tool": name, "argument": preview(argument)})
		try:
			return await tool.invoke(argument)
		except Exception as exc:
			logger.error("Tool invocation failed", extra={"tool": name}, exc_info=True)
			return f"Tool {name} failed: {exc}"
