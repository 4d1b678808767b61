from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from app.backend.response import encode_sse, request_id_of, success_response
from app.backend.schemas import ChatRequest
from app.backend.services.chat_service import ChatService
from app.backend.services.errors import ChatServiceError


router = APIRouter(prefix="/api/agent", tags=["chat"])


def chat_service_of(request: Request) -> ChatService:
	return request.app.state.chat_service


def _session_id(request: Request, session_id: Optional[str]) -> Optional[str]:
	candidate = session_id if session_id is not None else request.headers.get("X-Session-ID", "")
	return candidate.strip() or None


def _validate_or_raise(service: ChatService, payload: ChatRequest) -> None:
	try:
		service.validate(payload)
	except ChatServiceError as exc:
		raise HTTPException(
			status_code=exc.status_code,
			detail={"code": exc.code, "message": exc.message},
		) from exc


def _stream_response(
	service: ChatService,
	payload: ChatRequest,
	session_id: Optional[str],
	request_id: str,
) -> StreamingResponse:
	async def generate() -> AsyncIterator[str]:
		try:
			async for chunk in service.stream_message(payload, session_id, request_id):
				yield encode_sse(chunk.type, chunk.as_event())
		except ChatServiceError as exc:
			yield encode_sse("error", {"type": "error", "content": exc.message})

	return StreamingResponse(
		generate(),
		media_type="text/event-stream",
		headers={
			"Cache-Control": "no-cache",
			"Connection": "keep-alive",
			"X-Accel-Buffering": "no",
		},
	)


@router.post("/chat")
async def chat(request: Request, payload: ChatRequest, session_id: Optional[str] = None):
	service = chat_service_of(request)
	resolved_session = _session_id(request, session_id)
	_validate_or_raise(service, payload)

	if "text/event-stream" in request.headers.get("accept", ""):
		return _stream_response(service, payload, resolved_session, request_id_of(request))

	result = await service.process_message(payload, resolved_session, request_id_of(request))
	data = result.model_dump()
	data["session_id"] = resolved_session
	return success_response(request=request, data=data)


@router.post("/chat/stream")
async def chat_stream(request: Request, payload: ChatRequest, session_id: Optional[str] = None):
	service = chat_service_of(request)
	_validate_or_raise(service, payload)
	return _stream_response(service, payload, _session_id(request, session_id), request_id_of(request))

