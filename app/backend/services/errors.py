from __future__ import annotations


class ChatServiceError(Exception):
	def __init__(self, *, status_code: int, code: str, message: str):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message


class ChatValidationError(ChatServiceError):
	def __init__(self, *, code: str, message: str):
		super().__init__(status_code=400, code=code, message=message)


class AgentLimitExceeded(RuntimeError):
	pass
