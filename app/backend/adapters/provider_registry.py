from __future__ import annotations

import logging
from typing import Dict, List

from app.backend import config
from app.backend.adapters.local_backend import LocalChatBackend
from app.backend.adapters.model_backend import ModelBackend
from app.backend.adapters.openai_backend import OpenAIChatBackend
from app.backend.services.errors import ChatServiceError


logger = logging.getLogger(__name__)

_AUTO_PRIORITY = ("openai", "google", "groq")


def configured_mode() -> str:
	mode = config.provider_mode()
	if mode not in config.PROVIDER_MODES:
		raise ChatServiceError(
			status_code=503,
			code="provider_unconfigured",
			message="CHAT_PROVIDER_MODE must be one of: " + ", ".join(config.PROVIDER_MODES) + ".",
		)
	return mode


def resolved_mode(mode: str) -> str:
	if mode != "auto":
		return mode
	for provider in _AUTO_PRIORITY:
		if config.provider_api_key(provider):
			return provider
	return "local"


def build_backend(provider: str) -> ModelBackend:
	if provider == "local":
		return LocalChatBackend()
	api_key = config.provider_api_key(provider)
	if not api_key:
		raise ChatServiceError(
			status_code=503,
			code="provider_unconfigured",
			message=f"{provider} API key not configured. Set {config.PROVIDER_KEY_ENV[provider]}.",
		)
	return OpenAIChatBackend(
		provider=provider,
		model=config.provider_model(provider),
		api_key=api_key,
		base_url=config.PROVIDER_BASE_URLS.get(provider),
		temperature=config.model_temperature(),
		timeout_s=config.model_timeout_s(),
	)


def resolve_backend() -> ModelBackend:
	mode = configured_mode()
	provider = resolved_mode(mode)
	backend = build_backend(provider)
	logger.info(
		"Initialized model backend",
		extra={"configured_mode": mode, "provider": backend.provider, "model": backend.model},
	)
	return backend


def provider_status(backend: ModelBackend) -> Dict[str, object]:
	mode = config.provider_mode()
	warnings: List[str] = []
	if backend.provider == "local" and mode != "local":
		warnings.append("No provider credentials configured; serving replies from the local backend.")
	return {
		"provider_mode": mode,
		"effective_provider_mode": backend.provider,
		"provider_ready": True,
		"provider_warnings": warnings,
	}
