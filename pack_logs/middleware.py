from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
import uuid


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each storefront request and tags the response with its request id."""

    def __init__(self, app, logger):
        super().__init__(app)
        self.logger = logger

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())[:8]
        start = time.perf_counter()

        self.logger.info("request_started",
            req_id=req_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error("request_failed", req_id=req_id, path=request.url.path, error=str(e))
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        # client errors are expected misuse (sold card, bad transition); keep them visible
        log = self.logger.warning if response.status_code >= 400 else self.logger.info
        log("request_completed",
            req_id=req_id,
            status=response.status_code,
            duration_ms=duration_ms
        )
        response.headers["X-Request-ID"] = req_id
        return response
