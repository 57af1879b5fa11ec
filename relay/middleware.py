"""
FastAPI middleware for request ids, logging and timing.
"""
import time
import uuid
import logging
from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def log_requests_middleware(request: Request, call_next):
    """Tag each relay call with a request id and log its duration

    Relay calls can wait minutes for ChatGPT, so the duration covers the
    whole time the task spent queued and running.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    response.headers[REQUEST_ID_HEADER] = request_id
    # Health probes are not worth a log line
    if request.url.path.startswith("/v1/"):
        logger.info(f"[{request_id}] {request.method} {request.url.path} - {response.status_code} - {elapsed:.3f}s")

    return response
