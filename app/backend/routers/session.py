from __future__ import annotations

import secrets
import time

from fastapi import APIRouter, HTTPException, Request

from app.backend.response import now_iso, success_response
from app.backend.routers.chat import chat_service_of
from app.backend.schemas import ApiEnvelope


router = APIRouter(prefix="/api/agent", tags=["session"])


def new_session_id() -> str:
	return f"session_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


@router.post("/session", response_model=ApiEnvelope)
def create_session(request: Request):
	# Sessions materialize in the store on their first committed turn.
	return success_response(
		request=request,
		data={"session_id": new_session_id(), "message": "Chat session ID generated successfully"},
	)


@router.get("/session/{session_id}", response_model=ApiEnvelope)
def get_session(request: Request, session_id: str):
	store = chat_service_of(request).store
	turns = store.get(session_id)
	if not turns:
		raise HTTPException(status_code=404, detail="Session not found or empty.")
	return success_response(
		request=request,
		data={
			"session_id": session_id,
			"summary": store.summary(session_id),
			"turn_count": len(turns),
			"created_at": turns[0].created_at,
			"updated_at": turns[-1].created_at,
		},
	)


@router.delete("/session/{session_id}", response_model=ApiEnvelope)
def delete_session(request: Request, session_id: str):
	if not chat_service_of(request).store.clear(session_id):
		raise HTTPException(status_code=404, detail="Session not found.")
	return success_response(
		request=request,
		data={"session_id": session_id, "message": "Session deleted successfully"},
	)


@router.get("/stats", response_model=ApiEnvelope)
def get_stats(request: Request):
	data = chat_service_of(request).stats()
	data["checked_at"] = now_iso()
	return success_response(request=request, data=data)
