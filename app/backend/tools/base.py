from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict


class ChatTool(ABC):
	"""A named capability the agent may call with one string argument.

	Expected failures (missing credentials, rate limits, nothing found) are
	returned as readable strings. Only unexpected faults raise.
	"""

	name: str = ""
	description: str = ""
	argument_hint: str = "Tool input"

	@abstractmethod
	async def invoke(self, argument: str) -> str:
		raise NotImplementedError

	def schema(self) -> Dict[str, Any]:
		return {
			"type": "function",
			"function": {
				"name": self.name,
				"description": self.description,
				"parameters": {
					"type": "object",
					"properties": {
						"input": {"type": "string", "description": self.argument_hint},
					},
					"required": ["input"],
				},
			},
		}
