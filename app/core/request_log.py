# app/core/request_log.py
import logging
import time

from fastapi import FastAPI, Request

logger = logging.getLogger("app.requests")

# Paths not worth a log line in production
QUIET_PATHS = {"/", "/favicon.ico"}


def register_request_logging(app: FastAPI, verbose: bool = False) -> None:
    """
    Log one line per request and expose the handler time in
    the X-Response-Time header (milliseconds).

    Responses >= 400 are logged at WARNING, everything else at INFO.
    With verbose=False health checks are skipped.
    """

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Response-Time"] = f"{duration_ms:.1f}"

        if not verbose and request.url.path in QUIET_PATHS:
            return response

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response
