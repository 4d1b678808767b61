from __future__ import annotations

import logging
import os
from typing import Any, List, Optional, Tuple

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from app.backend import config, constants
from app.backend.logging_config import configure_logging
from app.backend.middleware import RequestContextMiddleware
from app.backend.response import error_response
from app.backend.routers import chat, health, personalities, session
from app.backend.services.chat_service import ChatService, build_chat_service
from app.backend.services.errors import ChatServiceError

load_dotenv()
configure_logging()

logger = logging.getLogger(__name__)


def create_app(chat_service: ChatService | None = None) -> FastAPI:
	app = FastAPI(
		title=constants.APP_NAME,
		version=constants.APP_VERSION,
	)
	app.state.chat_service = chat_service or build_chat_service()
	_register_middleware(app)
	_register_handlers(app)
	_register_routers(app)
	return app


def _register_middleware(app: FastAPI) -> None:
	app.add_middleware(RequestContextMiddleware)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=config.cors_allow_origins(constants.DEFAULT_CORS_ALLOW_ORIGINS),
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.add_middleware(
		TrustedHostMiddleware,
		allowed_hosts=constants.DEFAULT_TRUSTED_HOSTS,
	)


def _register_routers(app: FastAPI) -> None:
	app.include_router(health.router)
	app.include_router(chat.router)
	app.include_router(session.router)
	app.include_router(personalities.router)


def _register_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
		code, message, evidence = _detail_parts(exc.status_code, exc.detail)
		payload = error_response(code=code, message=message, request=request, evidence=evidence)
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(ChatServiceError)
	async def handle_chat_service_error(request: Request, exc: ChatServiceError) -> JSONResponse:
		payload = error_response(
			code=exc.code,
			message=exc.message,
			request=request,
		)
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def handle_request_validation_error(
		request: Request,
		exc: RequestValidationError,
	) -> JSONResponse:
		evidence = []
		for issue in exc.errors():
			loc = ".".join(str(part) for part in issue.get("loc", []))
			msg = issue.get("msg", "Invalid request.")
			evidence.append(f"{loc}: {msg}" if loc else msg)
		payload = error_response(
			code="validation_error",
			message="Request validation failed.",
			request=request,
			evidence=evidence,
		)
		return JSONResponse(status_code=422, content=payload)

	@app.exception_handler(Exception)
	async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
		logger.error("Unhandled error", extra={"path": request.url.path}, exc_info=exc)
		payload = error_response(
			code="internal_error",
			message="Internal server error.",
			request=request,
			evidence=[f"{exc.__class__.__name__}: {exc}"] if config.debug_errors() else None,
		)
		return JSONResponse(status_code=500, content=payload)


def _exc_message(detail: Any) -> str:
	if isinstance(detail, str):
		return detail
	if detail is None:
		return "Request failed."
	return str(detail)


def _detail_parts(status_code: int, detail: Any) -> Tuple[str, str, Optional[List[str]]]:
	# Routers raise HTTPException(detail={"code", "message", "evidence"}) for typed errors.
	if not isinstance(detail, dict):
		return f"http_{status_code}", _exc_message(detail), None
	code = detail.get("code")
	message = detail.get("message")
	evidence = detail.get("evidence")
	return (
		code.strip() if isinstance(code, str) and code.strip() else f"http_{status_code}",
		message.strip() if isinstance(message, str) and message.strip() else _exc_message(detail),
		[str(item) for item in evidence] if isinstance(evidence, list) else None,
	)


app = create_app()


def serve() -> None:
	import uvicorn

	uvicorn.run(
		"app.backend.main:app",
		host=os.getenv("HOST", "0.0.0.0"),
		port=int(os.getenv("PORT", "3001")),
		log_level=config.log_level().lower(),
	)
