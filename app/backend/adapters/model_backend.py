from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence


ChatMessage = Dict[str, Any]
MessageDelta = Dict[str, Any]
ToolSchema = Dict[str, Any]


class ModelBackend(ABC):
	"""Chat model capability shared by every provider.

	``invoke`` returns one assistant message dict in chat-completions shape.
	``stream`` yields delta dicts ``{"content": str, "tool_calls": [...]}``
	where each tool call part carries ``index``, ``id``, ``name`` and an
	``arguments`` fragment.
	"""

	provider: str = ""
	model: str = ""

	@abstractmethod
	async def invoke(
		self,
		messages: Sequence[ChatMessage],
		tools: Optional[List[ToolSchema]] = None,
	) -> ChatMessage:
		raise NotImplementedError

	@abstractmethod
	def stream(
		self,
		messages: Sequence[ChatMessage],
		tools: Optional[List[ToolSchema]] = None,
	) -> AsyncIterator[MessageDelta]:
		raise NotImplementedError

	def describe(self) -> Dict[str, str]:
		return {"provider": self.provider, "model": self.model}


def message_text(message: Any) -> str:
	if message is None:
		return ""
	content = message.get("content") if isinstance(message, dict) else getattr(message, "content", None)
	if isinstance(content, str):
		return content
	if isinstance(content, list):
		parts: List[str] = []
		for item in content:
			text = item.get("text") if isinstance(item, dict) else getattr(item, "text", None)
			if isinstance(text, str):
				parts.append(text)
		return "".join(parts)
	return ""


def merge_delta(message: ChatMessage, delta: MessageDelta) -> ChatMessage:
	content = delta.get("content")
	if isinstance(content, str) and content:
		message["content"] = (message.get("content") or "") + content
	for part in delta.get("tool_calls") or []:
		calls = message.setdefault("tool_calls", [])
		index = part.get("index")
		if not isinstance(index, int):
			index = len(calls)
		while len(calls) <= index:
			calls.append({"id": "", "type": "function", "function": {"name": "", "arguments": ""}})
		call = calls[index]
		if part.get("id"):
			call["id"] = part["id"]
		if part.get("name"):
			call["function"]["name"] += part["name"]
		if part.get("arguments"):
			call["function"]["arguments"] += part["arguments"]
	return message
