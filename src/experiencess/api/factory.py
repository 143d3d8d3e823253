"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from experiencess.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from experiencess.observability.logging import get_logger

from .routers import public


def create_app() -> FastAPI:
    """Create the booking API app with correlation-ID middleware."""
    # Module loggers under the package propagate to this JSON handler
    get_logger("experiencess")

    app = FastAPI(
        title="Experiencess Booking",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.include_router(public.router)

    return app
