from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Literal, Sequence, Tuple

from app.backend import constants
from app.backend.adapters.model_backend import ChatMessage, ModelBackend, message_text
from app.backend.adapters.tool_agent import ToolAgent


logger = logging.getLogger(__name__)

DispatchMethod = Literal["direct_model", "agent_invoke", "direct_fallback"]
StreamMode = Literal["delta", "snapshot"]


def final_answer_text(messages: Sequence[Any]) -> str:
	"""Return the newest assistant answer in ``messages``, or ``""``.

	Assistant messages that carry tool calls are plans, not answers, and are
	skipped along with tool results and input messages.
	"""
	for message in reversed(list(messages)):
		if not isinstance(message, dict) or message.get("role") != "assistant":
			continue
		if message.get("tool_calls"):
			continue
		text = message_text(message).strip()
		if text:
			return text
	return ""


class CompletionDispatcher:
	def __init__(self, backend: ModelBackend, agent: ToolAgent | None = None):
		self._backend = backend
		self._agent = agent

	@property
	def backend(self) -> ModelBackend:
		return self._backend

	@property
	def uses_agent(self) -> bool:
		return self._agent is not None and self._agent.has_tools

	@property
	def tool_names(self) -> List[str]:
		return self._agent.tool_names if self._agent is not None else []

	async def _direct(self, messages: Sequence[ChatMessage]) -> List[ChatMessage]:
		reply = await self._backend.invoke(list(messages))
		return [reply]

	async def _agent_messages(self, messages: Sequence[ChatMessage], request_id: str) -> Tuple[List[ChatMessage], DispatchMethod]:
		try:
			result = await self._agent.invoke(messages)
		except Exception:
			logger.warning(
				"Agent invocation failed, falling back to direct model",
				extra={"request_id": request_id},
				exc_info=True,
			)
			return await self._direct(messages), "direct_fallback"
		return result[len(messages):], "agent_invoke"

	async def dispatch(self, messages: Sequence[ChatMessage], request_id: str = "unknown") -> Tuple[str, DispatchMethod]:
		if self.uses_agent:
			produced, method = await self._agent_messages(messages, request_id)
		else:
			logger.debug("Using direct model call (no tools)", extra={"request_id": request_id})
			produced, method = await self._direct(messages), "direct_model"

		text = final_answer_text(produced)
		if not text:
			logger.warning(
				"No valid AI response found in messages",
				extra={"request_id": request_id, "message_count": len(produced), "method": method},
			)
			return constants.PROCESSING_FALLBACK_MESSAGE, method
		return text, method

	def open_stream(self, messages: Sequence[ChatMessage]) -> Tuple[AsyncIterator[Any], StreamMode]:
		if self.uses_agent:
			return self._agent.stream(messages), "snapshot"
		return self._backend.stream(list(messages)), "delta"
