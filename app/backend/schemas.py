from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiError(BaseModel):
	model_config = ConfigDict(extra="forbid")

	code: str
	message: str
	evidence: List[str] = Field(default_factory=list)


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Dict[str, Any]] = None
	error: Optional[ApiError] = None


class HistoryMessage(BaseModel):
	model_config = ConfigDict(extra="ignore")

	role: str = Field(..., description="user | assistant")
	content: str = ""


class ChatRequest(BaseModel):
	model_config = ConfigDict(extra="ignore")

	# Range checks live in the chat service so they surface as 400s.
	message: str = Field(..., description="User message text.")
	personality: str = Field(default="default", description="Personality id.")
	mood: float = Field(default=50, description="Mood scalar in [0, 100].")
	user_id: Optional[str] = Field(default=None)
	conversation_history: List[HistoryMessage] = Field(
		default_factory=list,
		description="Prior turns, used only when no session id is supplied.",
	)


class ChatResponse(BaseModel):
	model_config = ConfigDict(extra="forbid")

	message: str
	personality: str
	# Cosmetic value, not a calibrated confidence.
	confidence: float
	response_time: int = Field(..., description="Elapsed milliseconds.")


class StreamChunkMetadata(BaseModel):
	model_config = ConfigDict(extra="forbid")

	personality: str
	confidence: Optional[float] = None
	response_time: Optional[int] = None


class StreamChunk(BaseModel):
	model_config = ConfigDict(extra="forbid")

	type: Literal["start", "chunk", "end", "error"]
	content: Optional[str] = None
	metadata: Optional[StreamChunkMetadata] = None

	def as_event(self) -> Dict[str, Any]:
		return self.model_dump(exclude_none=True)


class PersonalityData(BaseModel):
	model_config = ConfigDict(extra="forbid")

	id: str
	name: str
	description: str
	system_prompt: str
	mood_modifiers: Dict[str, str]
