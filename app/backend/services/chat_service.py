from __future__ import annotations

import logging
import math
import random
import time
from typing import AsyncIterator, Dict, List, Sequence

from app.backend import config, constants
from app.backend.adapters import provider_registry
from app.backend.adapters.model_backend import ModelBackend
from app.backend.adapters.tool_agent import ToolAgent
from app.backend.logging_config import preview
from app.backend.schemas import ChatRequest, ChatResponse, StreamChunk, StreamChunkMetadata
from app.backend.services import message_chain, personality_service
from app.backend.services.chat_session_service import ChatSessionStore
from app.backend.services.completion_dispatcher import CompletionDispatcher
from app.backend.services.errors import ChatValidationError
from app.backend.services.stream_reconciler import StreamReconciler
from app.backend.services.tool_call_recovery import ToolCallRecovery, is_music_request
from app.backend.tools import registry as tool_registry
from app.backend.tools.base import ChatTool


logger = logging.getLogger(__name__)


def _elapsed_ms(started_at: float) -> int:
	return int(round((time.perf_counter() - started_at) * 1000))


def cosmetic_confidence() -> float:
	# Decorative value kept for client compatibility; carries no signal.
	return round(random.uniform(constants.DEFAULT_CONFIDENCE, constants.DEFAULT_CONFIDENCE + constants.CONFIDENCE_SPREAD), 4)


def validate_request(request: ChatRequest) -> None:
	if not isinstance(request.message, str) or not request.message.strip():
		raise ChatValidationError(code="empty_message", message="Message cannot be empty.")
	if not personality_service.is_known_personality(request.personality):
		raise ChatValidationError(code="invalid_personality", message="Invalid personality mode.")
	mood = request.mood
	if isinstance(mood, bool) or not isinstance(mood, (int, float)) or math.isnan(mood) or not 0 <= mood <= 100:
		raise ChatValidationError(code="invalid_mood", message="Mood must be between 0 and 100.")


class ChatService:
	"""Per-request conversation pipeline.

	History is read from the store (or from the request when there is no
	session), the prompt chain is assembled and dispatched, and the finished
	turn is written back. Neither entry point lets a backend error escape:
	``process_message`` degrades to an apology response and
	``stream_message`` ends with a single ``error`` chunk. Only validation
	errors are raised, before any backend call.
	"""

	def __init__(
		self,
		*,
		store: ChatSessionStore,
		dispatcher: CompletionDispatcher,
		recovery: ToolCallRecovery | None = None,
	):
		self._store = store
		self._dispatcher = dispatcher
		self._recovery = recovery

	@property
	def store(self) -> ChatSessionStore:
		return self._store

	@property
	def dispatcher(self) -> CompletionDispatcher:
		return self._dispatcher

	def validate(self, request: ChatRequest) -> None:
		validate_request(request)

	def _history(self, request: ChatRequest, session_id: str | None) -> Sequence[object]:
		if session_id:
			return self._store.get(session_id)
		return request.conversation_history

	def _apology(self, request: ChatRequest, exc: Exception) -> str:
		message = constants.MUSIC_ERROR_MESSAGE if is_music_request(request.message) else constants.GENERIC_ERROR_MESSAGE
		if config.debug_errors():
			message = f"{message} ({exc.__class__.__name__}: {exc})"
		return message

	def _log_started(self, stage: str, request: ChatRequest, session_id: str | None, history_length: int, request_id: str) -> None:
		logger.info(
			stage,
			extra={
				"request_id": request_id,
				"personality": request.personality,
				"mood": request.mood,
				"message_length": len(request.message),
				"session_id": session_id or "temporary",
				"history_length": history_length,
				"available_tools": self._dispatcher.tool_names,
			},
		)

	async def process_message(
		self,
		request: ChatRequest,
		session_id: str | None = None,
		request_id: str = "unknown",
	) -> ChatResponse:
		started_at = time.perf_counter()
		self.validate(request)
		try:
			history = self._history(request, session_id)
			self._log_started("processing_started", request, session_id, len(history), request_id)
			messages = message_chain.assemble(request, history)
			text, method = await self._dispatcher.dispatch(messages, request_id)
			if self._recovery is not None and self._recovery.detect(text):
				text = await self._recovery.recover(text, request.message, request_id)
			if session_id:
				self._store.append(session_id, request.message, text)
			response = ChatResponse(
				message=text,
				personality=request.personality,
				confidence=cosmetic_confidence(),
				response_time=_elapsed_ms(started_at),
			)
		except Exception as exc:
			logger.error(
				"Error processing message",
				extra={"request_id": request_id, "personality": request.personality, "mood": request.mood},
				exc_info=True,
			)
			return ChatResponse(
				message=self._apology(request, exc),
				personality=request.personality,
				confidence=constants.ERROR_CONFIDENCE,
				response_time=_elapsed_ms(started_at),
			)
		logger.info(
			"response_formatted",
			extra={
				"request_id": request_id,
				"method": method,
				"response_time": response.response_time,
				"response_length": len(response.message),
				"memory_saved": bool(session_id),
			},
		)
		return response

	async def stream_message(
		self,
		request: ChatRequest,
		session_id: str | None = None,
		request_id: str = "unknown",
	) -> AsyncIterator[StreamChunk]:
		started_at = time.perf_counter()
		self.validate(request)
		yield StreamChunk(type="start", metadata=StreamChunkMetadata(personality=request.personality))

		reconciler: StreamReconciler | None = None
		try:
			history = self._history(request, session_id)
			self._log_started("streaming_started", request, session_id, len(history), request_id)
			messages = message_chain.assemble(request, history)
			source, mode = self._dispatcher.open_stream(messages)
			reconciler = StreamReconciler(mode, offset=len(messages))
			async for fragment in reconciler.reconcile(source):
				yield StreamChunk(type="chunk", content=fragment)
		except Exception:
			logger.error(
				"Error streaming message",
				extra={
					"request_id": request_id,
					"personality": request.personality,
					"partial_response": preview(reconciler.text if reconciler else "", 200),
				},
				exc_info=True,
			)
			yield StreamChunk(type="error", content=constants.STREAM_ERROR_MESSAGE)
			return

		full_text = reconciler.text
		if full_text:
			if session_id:
				self._store.append(session_id, request.message, full_text)
		else:
			yield StreamChunk(type="chunk", content=constants.PROCESSING_FALLBACK_MESSAGE)

		response_time = _elapsed_ms(started_at)
		logger.info(
			"streaming_completed",
			extra={
				"request_id": request_id,
				"mode": reconciler.mode,
				"fragments": reconciler.fragments,
				"revisions": reconciler.revisions,
				"response_length": len(full_text),
				"memory_saved": bool(full_text and session_id),
				"response_time": response_time,
			},
		)
		yield StreamChunk(
			type="end",
			metadata=StreamChunkMetadata(
				personality=request.personality,
				confidence=cosmetic_confidence(),
				response_time=response_time,
			),
		)

	def stats(self) -> Dict[str, object]:
		count = self._store.count()
		return {
			"total_sessions": count,
			"active_sessions": count,
			"memory_type": "in_process_buffer",
			"history_max_turns": self._store.max_turns,
		}


def build_chat_service(
	*,
	backend: ModelBackend | None = None,
	tools: List[ChatTool] | None = None,
	store: ChatSessionStore | None = None,
) -> ChatService:
	backend = backend or provider_registry.resolve_backend()
	if tools is None:
		tools = tool_registry.build_tools(config.enabled_tools())
	agent = None
	if tools:
		agent = ToolAgent(
			backend,
			tools,
			max_iterations=config.agent_max_iterations(),
			timeout_s=config.agent_timeout_s(),
		)
	return ChatService(
		store=store or ChatSessionStore(),
		dispatcher=CompletionDispatcher(backend, agent),
		recovery=ToolCallRecovery({tool.name: tool for tool in tools}),
	)
