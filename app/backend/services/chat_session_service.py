from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Literal, Sequence

from app.backend import config


logger = logging.getLogger(__name__)

TurnRole = Literal["user", "assistant"]


@dataclass(frozen=True)
class ChatTurn:
	role: TurnRole
	text: str
	created_at: str

	def as_dict(self) -> Dict[str, str]:
		return {"role": self.role, "text": self.text, "created_at": self.created_at}


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ChatSessionStore:
	"""In-process conversation memory keyed by session id.

	Every mutation is a single synchronous call, so on one event loop two
	overlapping requests for the same session can't lose each other's turns.
	History is never persisted and never expires.
	"""

	def __init__(self, max_turns: int | None = None):
		self._max_turns = max_turns if isinstance(max_turns, int) and max_turns > 0 else config.history_max_turns()
		self._sessions: Dict[str, List[ChatTurn]] = {}

	@property
	def max_turns(self) -> int:
		return self._max_turns

	def get(self, session_id: str | None) -> List[ChatTurn]:
		if not session_id:
			return []
		return list(self._sessions.get(session_id, ()))

	def append(self, session_id: str | None, user_text: str, assistant_text: str) -> None:
		if not session_id:
			logger.warning("Attempted to save memory without session ID")
			return
		created_at = _now_iso()
		turns = self._sessions.get(session_id, [])
		turns = turns + [
			ChatTurn(role="user", text=user_text, created_at=created_at),
			ChatTurn(role="assistant", text=assistant_text, created_at=created_at),
		]
		# Evict whole (user, assistant) pairs so history never opens on an assistant turn.
		removed = len(turns) - self._max_turns
		removed += removed % 2
		if removed > 0:
			turns = turns[removed:]
			logger.debug("Trimmed conversation history", extra={"session_id": session_id, "removed": removed})
		self._sessions[session_id] = turns
		logger.debug("Saved conversation to memory", extra={"session_id": session_id, "total_turns": len(turns)})

	def clear(self, session_id: str | None) -> bool:
		if not session_id:
			return False
		return self._sessions.pop(session_id, None) is not None

	def count(self) -> int:
		return len(self._sessions)

	def clear_all(self) -> None:
		self._sessions.clear()

	def summary(self, session_id: str | None) -> str | None:
		turns = self.get(session_id)
		if not turns:
			return None
		return render_transcript(turns)


def render_transcript(turns: Sequence[ChatTurn]) -> str:
	return "\n".join(f"{turn.role}: {turn.text}" for turn in turns)
