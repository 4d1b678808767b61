from __future__ import annotations

import logging

from app.backend import config


_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_configured = False


def configure_logging() -> None:
	global _configured
	level = getattr(logging, config.log_level(), logging.INFO)
	if _configured:
		logging.getLogger().setLevel(level)
		return
	logging.basicConfig(level=level, format=_FORMAT)
	# httpx logs every request line at INFO.
	logging.getLogger("httpx").setLevel(logging.WARNING)
	_configured = True


def preview(text: str | None, limit: int = 100) -> str:
	if not text:
		return ""
	cleaned = " ".join(text.split())
	if len(cleaned) <= limit:
		return cleaned
	return cleaned[:limit] + "..."
