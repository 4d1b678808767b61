from __future__ import annotations

import logging
import re
from typing import Mapping

from app.backend import constants
from app.backend.logging_config import preview
from app.backend.tools.base import ChatTool


logger = logging.getLogger(__name__)

_MALFORMED_CALL_RE = re.compile(r"<function|function\s*=\s*[\w_]+", re.IGNORECASE)
_MUSIC_REQUEST_RE = re.compile(r"\b(?:play|music|spotify|song|artist|album|pause|resume|skip)\b", re.IGNORECASE)

_RESPONSE_TARGET_PATTERNS = (
	re.compile(r"\bplay\s*:?\s*([^\"'}<>]+)", re.IGNORECASE),
	re.compile(r"(?<![\w\"])\"([^\"]+)\"(?!\s*:)"),
)
_MESSAGE_TARGET_PATTERN = re.compile(r"\bplay\s+(.+)", re.IGNORECASE)


def is_music_request(message: str) -> bool:
	return bool(_MUSIC_REQUEST_RE.search(message or ""))


def extract_song_name(response: str, original_message: str) -> str:
	for pattern in _RESPONSE_TARGET_PATTERNS:
		match = pattern.search(response or "")
		if match and match.group(1).strip():
			return match.group(1).strip()
	match = _MESSAGE_TARGET_PATTERN.search(original_message or "")
	if match:
		return match.group(1).strip().rstrip(".!?")
	return ""


def _unavailable_message(song_name: str) -> str:
	return (
		f"I'd like to play \"{song_name}\" but I'm having trouble with the music system. "
		"Make sure you're logged into Spotify."
	)


class ToolCallRecovery:
	"""Repair answers where the model wrote a tool call as text.

	Some models emit ``<function=spotify_control>...`` markup instead of a
	structured call. For music requests the target is pulled out of the
	reply or the user's message and the music tool is called by hand.
	"""

	def __init__(self, tools: Mapping[str, ChatTool], music_tool_name: str = constants.MUSIC_TOOL_NAME):
		self._tools = dict(tools)
		self._music_tool_name = music_tool_name

	def detect(self, text: str) -> bool:
		return bool(text) and bool(_MALFORMED_CALL_RE.search(text))

	async def recover(self, text: str, user_message: str, request_id: str = "unknown") -> str:
		logger.warning(
			"Detected malformed function call in response, attempting to fix",
			extra={"request_id": request_id, "response": preview(text, 200)},
		)
		if not is_music_request(user_message):
			return constants.GENERIC_ERROR_MESSAGE

		song_name = extract_song_name(text, user_message)
		if not song_name:
			logger.warning(
				"Could not extract song name from request",
				extra={"request_id": request_id, "message": preview(user_message)},
			)
			return (
				"I had trouble with that music request. Make sure you're logged into Spotify "
				"and try something like \"play Bohemian Rhapsody\"."
			)

		tool = self._tools.get(self._music_tool_name)
		if tool is None:
			logger.error(
				"Music tool not registered",
				extra={"request_id": request_id, "available_tools": sorted(self._tools)},
			)
			return _unavailable_message(song_name)

		logger.info("Manually invoking music tool", extra={"request_id": request_id, "song_name": song_name})
		try:
			return await tool.invoke(f"play:{song_name}")
		except Exception:
			logger.error("Manual tool invocation failed", extra={"request_id": request_id}, exc_info=True)
			return _unavailable_message(song_name)
