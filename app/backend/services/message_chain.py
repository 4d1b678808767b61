from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List

from app.backend.schemas import ChatRequest
from app.backend.services import personality_service


logger = logging.getLogger(__name__)

ChatMessage = Dict[str, Any]

_KNOWN_HISTORY_ROLES = {"user", "assistant"}


def _history_entry(role: Any, text: Any) -> ChatMessage:
	if role not in _KNOWN_HISTORY_ROLES:
		logger.warning("Unknown message role in history", extra={"role": role})
		role = "user"
	return {"role": role, "content": str(text or "")}


def history_messages(history: Iterable[Any]) -> List[ChatMessage]:
	messages: List[ChatMessage] = []
	for turn in history:
		if isinstance(turn, dict):
			role = turn.get("role")
			text = turn.get("text", turn.get("content"))
		else:
			role = getattr(turn, "role", None)
			text = getattr(turn, "text", None)
			if text is None:
				text = getattr(turn, "content", None)
		messages.append(_history_entry(role, text))
	return messages


def assemble(request: ChatRequest, history: Iterable[Any], now: datetime | None = None) -> List[ChatMessage]:
	system_prompt = personality_service.build_prompt(request.personality, request.mood, now=now)
	messages: List[ChatMessage] = [{"role": "system", "content": system_prompt}]
	messages.extend(history_messages(history))
	messages.append({"role": "user", "content": request.message})
	logger.debug(
		"Messages prepared",
		extra={"total_messages": len(messages), "prompt_length": len(system_prompt)},
	)
	return messages
