from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from image_proxy.config import get_settings
from image_proxy.errors import (
    PayloadTooLargeError,
    error_response,
    register_exception_handlers,
    unhandled_error_response,
)
from image_proxy.handlers import images_handler, index_handler
from image_proxy.services.image_service import get_image_service

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    # Only close the client if a request ever created it
    if get_image_service.cache_info().currsize:
        await get_image_service().close()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

register_exception_handlers(app)
app.include_router(index_handler.router)
app.include_router(images_handler.router)


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > settings.max_request_bytes:
        exc = PayloadTooLargeError()
        response = error_response(exc.status, exc.message, exc)
    else:
        try:
            response = await call_next(request)
        except Exception as exc:
            # Unhandled errors are rendered here, inside the access log
            response = unhandled_error_response(request, exc)

    for header, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s %s %.1f ms", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
