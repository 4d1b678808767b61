from __future__ import annotations

import re
from typing import AsyncIterator, List, Optional, Sequence

from app.backend.adapters.model_backend import ChatMessage, MessageDelta, ModelBackend, ToolSchema, message_text


_GREETING_TOKENS = {"hi", "hello", "hey", "yo", "sup", "morning", "evening"}
_THANKS_TOKENS = {"thanks", "thank", "thx"}
_CHECK_IN_PHRASES = {"how are you", "what's up", "whats up", "how's it going"}


def _tokenize(text: str) -> List[str]:
	return re.findall(r"[a-zA-Z0-9']+", text.lower())


def _last_user_text(messages: Sequence[ChatMessage]) -> str:
	for message in reversed(messages):
		if message.get("role") == "user":
			return " ".join(message_text(message).split())
	return ""


def local_reply(user_text: str) -> str:
	text = " ".join(user_text.split()).strip()
	if not text:
		return "Hey, I'm here. What's on your mind?"
	lowered = text.lower()
	tokens = _tokenize(text)
	if any(phrase in lowered for phrase in _CHECK_IN_PHRASES):
		return "I'm doing pretty well, thanks for asking. How about you?"
	if set(tokens) & _THANKS_TOKENS:
		return "You're welcome. Anything else you want to chat about?"
	if set(tokens) & _GREETING_TOKENS:
		return "Hey! Good to hear from you. What's on your mind?"
	topic = " ".join(tokens[:6])
	return f"Yeah, I hear you about {topic}. Tell me a bit more."


def _word_chunks(text: str) -> List[str]:
	return re.findall(r"\S+\s*", text)


class LocalChatBackend(ModelBackend):
	"""Offline backend with deterministic replies. Never calls tools."""

	provider = "local"
	model = "local-echo"

	async def invoke(
		self,
		messages: Sequence[ChatMessage],
		tools: Optional[List[ToolSchema]] = None,
	) -> ChatMessage:
		return {"role": "assistant", "content": local_reply(_last_user_text(messages))}

	async def stream(
		self,
		messages: Sequence[ChatMessage],
		tools: Optional[List[ToolSchema]] = None,
	) -> AsyncIterator[MessageDelta]:
		for chunk in _word_chunks(local_reply(_last_user_text(messages))):
			yield {"content": chunk, "tool_calls": []}
