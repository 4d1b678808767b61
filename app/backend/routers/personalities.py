from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from app.backend.response import success_response
from app.backend.schemas import ApiEnvelope, PersonalityData
from app.backend.services import personality_service


router = APIRouter(prefix="/api/agent", tags=["personality"])


@router.get("/personalities", response_model=ApiEnvelope)
def list_personalities(request: Request):
	personalities = [
		PersonalityData.model_validate(item).model_dump()
		for item in personality_service.list_personalities()
	]
	return success_response(request=request, data={"personalities": personalities})


@router.get("/personality/{personality_id}", response_model=ApiEnvelope)
def get_personality(request: Request, personality_id: str):
	descriptor = personality_service.PERSONALITIES.get(personality_id)
	if descriptor is None:
		raise HTTPException(status_code=404, detail="Personality not found.")
	data = PersonalityData.model_validate({"id": personality_id, **descriptor.as_dict()}).model_dump()
	return success_response(request=request, data=data)
