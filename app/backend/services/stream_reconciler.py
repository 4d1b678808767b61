from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Sequence

from app.backend.services.completion_dispatcher import StreamMode, final_answer_text


logger = logging.getLogger(__name__)


class StreamReconciler:
	"""Turn a model stream into non-overlapping text fragments.

	``delta`` mode forwards append-only fragments as they come. ``snapshot``
	mode receives the whole conversation on every step, re-derives the answer
	so far and emits only the part not yet sent. ``offset`` is the number of
	input messages at the head of each snapshot; they are never scanned, so
	an earlier assistant turn from history can't be replayed as an answer.

	When a snapshot rewrites text that was already sent instead of extending
	it, the whole new candidate is emitted and ``revisions`` is bumped.
	"""

	def __init__(self, mode: StreamMode, offset: int = 0):
		self.mode = mode
		self._offset = max(0, offset)
		self._candidate = ""
		self._parts: List[str] = []
		self.revisions = 0
		self.fragments = 0

	@property
	def text(self) -> str:
		return "".join(self._parts)

	def feed(self, item: Any) -> str:
		if self.mode == "delta":
			fragment = self._delta_text(item)
		else:
			fragment = self._snapshot_suffix(item)
		if fragment:
			self._parts.append(fragment)
			self.fragments += 1
		return fragment

	async def reconcile(self, source: AsyncIterator[Any]) -> AsyncIterator[str]:
		async for item in source:
			fragment = self.feed(item)
			if fragment:
				yield fragment

	@staticmethod
	def _delta_text(item: Any) -> str:
		if isinstance(item, str):
			return item
		if isinstance(item, dict):
			content = item.get("content")
			return content if isinstance(content, str) else ""
		content = getattr(item, "content", None)
		return content if isinstance(content, str) else ""

	def _snapshot_suffix(self, snapshot: Any) -> str:
		if isinstance(snapshot, dict):
			snapshot = snapshot.get("messages") or []
		if not isinstance(snapshot, Sequence):
			return ""
		candidate = final_answer_text(list(snapshot)[self._offset:])
		if not candidate or candidate == self._candidate:
			return ""
		previous = self._candidate
		self._candidate = candidate
		if candidate.startswith(previous):
			return candidate[len(previous):]
		self.revisions += 1
		logger.warning(
			"Streamed answer was revised rather than extended",
			extra={"previous_length": len(previous), "candidate_length": len(candidate)},
		)
		return candidate
