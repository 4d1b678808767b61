from __future__ import annotations

import os
from typing import List, Literal


ProviderMode = Literal["auto", "openai", "google", "groq", "local"]

PROVIDER_MODES = ("auto", "openai", "google", "groq", "local")
DEFAULT_TOOLS = ("spotify_control", "web_search", "web_open")

_DEFAULT_HISTORY_MAX_TURNS = 20
_DEFAULT_AGENT_MAX_ITERATIONS = 2
_DEFAULT_AGENT_TIMEOUT_S = 30.0
_DEFAULT_MODEL_TIMEOUT_S = 30.0
_DEFAULT_TEMPERATURE = 0.8

_DEFAULT_MODELS = {
	"openai": "gpt-4o-mini",
	"google": "gemini-1.5-flash",
	"groq": "openai/gpt-oss-120b",
}

PROVIDER_KEY_ENV = {
	"openai": "OPENAI_API_KEY",
	"google": "GOOGLE_API_KEY",
	"groq": "GROQ_API_KEY",
}

PROVIDER_BASE_URLS = {
	"openai": None,
	"google": "https://generativelanguage.googleapis.com/v1beta/openai/",
	"groq": "https://api.groq.com/openai/v1",
}


def _int_env(name: str, default: int, minimum: int = 1) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _float_env(name: str, default: float) -> float:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError:
		return default
	return value if value > 0 else default


def _bool_env(name: str, default: bool = False) -> bool:
	raw = os.getenv(name, "").strip().lower()
	if not raw:
		return default
	return raw not in {"0", "false", "off", "no"}


def provider_mode() -> str:
	return os.getenv("CHAT_PROVIDER_MODE", "auto").strip().lower() or "auto"


def provider_api_key(provider: str) -> str:
	env_name = PROVIDER_KEY_ENV.get(provider)
	if env_name is None:
		return ""
	return os.getenv(env_name, "").strip()


def provider_model(provider: str) -> str:
	default = _DEFAULT_MODELS.get(provider, "")
	return os.getenv(f"CHAT_{provider.upper()}_MODEL", default).strip() or default


def model_temperature() -> float:
	raw = os.getenv("CHAT_MODEL_TEMPERATURE", "").strip()
	if not raw:
		return _DEFAULT_TEMPERATURE
	try:
		value = float(raw)
	except ValueError:
		return _DEFAULT_TEMPERATURE
	return value if 0.0 <= value <= 2.0 else _DEFAULT_TEMPERATURE


def model_timeout_s() -> float:
	return _float_env("CHAT_MODEL_TIMEOUT_S", _DEFAULT_MODEL_TIMEOUT_S)


def history_max_turns() -> int:
	return _int_env("CHAT_HISTORY_MAX_TURNS", _DEFAULT_HISTORY_MAX_TURNS, minimum=2)


def agent_max_iterations() -> int:
	return _int_env("CHAT_AGENT_MAX_ITERATIONS", _DEFAULT_AGENT_MAX_ITERATIONS, minimum=1)


def agent_timeout_s() -> float:
	return _float_env("CHAT_AGENT_TIMEOUT_S", _DEFAULT_AGENT_TIMEOUT_S)


def enabled_tools() -> List[str]:
	raw = os.getenv("CHAT_TOOLS")
	if raw is None:
		return list(DEFAULT_TOOLS)
	names = [item.strip() for item in raw.split(",") if item.strip()]
	return list(dict.fromkeys(names))


def brave_api_key() -> str:
	return os.getenv("BRAVE_API_KEY", "").strip()


def spotify_access_token() -> str:
	return os.getenv("SPOTIFY_ACCESS_TOKEN", "").strip()


def debug_errors() -> bool:
	if _bool_env("CHAT_DEBUG_ERRORS"):
		return True
	return os.getenv("APP_ENV", "production").strip().lower() == "development"


def log_level() -> str:
	return os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_allow_origins(defaults: List[str]) -> List[str]:
	origins = list(defaults)
	frontend = os.getenv("FRONTEND_URL", "").strip()
	if frontend and frontend not in origins:
		origins.append(frontend)
	return origins
