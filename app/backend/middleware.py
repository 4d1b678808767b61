from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next) -> Response:
		request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:12]}"
		request.state.request_id = request_id
		logger.info(
			"Request started",
			extra={
				"request_id": request_id,
				"method": request.method,
				"path": request.url.path,
				"client_ip": request.client.host if request.client else "unknown",
			},
		)
		start = time.perf_counter()
		response = await call_next(request)
		process_time = time.perf_counter() - start
		response.headers["X-Request-ID"] = request_id
		response.headers["X-Process-Time"] = f"{process_time:.6f}"
		logger.info(
			"Request completed",
			extra={
				"request_id": request_id,
				"method": request.method,
				"path": request.url.path,
				"status_code": response.status_code,
				"duration": f"{process_time:.3f}s",
			},
		)
		return response
