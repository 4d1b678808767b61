from __future__ import annotations

from fastapi import APIRouter, Request

from app.backend.adapters import provider_registry
from app.backend.response import now_iso, success_response
from app.backend.routers.chat import chat_service_of
from app.backend.schemas import ApiEnvelope


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("", response_model=ApiEnvelope)
def get_health(request: Request):
	service = chat_service_of(request)
	return success_response(
		request=request,
		data={
			"status": "healthy",
			"timestamp": now_iso(),
			"provider": service.dispatcher.backend.describe(),
			"tools": service.dispatcher.tool_names,
			**provider_registry.provider_status(service.dispatcher.backend),
		},
	)
