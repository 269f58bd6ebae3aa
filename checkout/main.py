import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from checkout.config import RelaySettings
from checkout.logging_config import setup_logging
from checkout.routes import SeenEvents, error_response, router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[RelaySettings] = None) -> FastAPI:
    settings = settings or RelaySettings.from_env()

    app = FastAPI(title="Checkout Payment Relay")
    app.state.settings = settings
    app.state.processed_events = SeenEvents()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if not errors:
            return error_response(400, "Invalid request")
        fields = [str(part) for part in errors[0]["loc"] if part != "body"]
        subject = ".".join(fields) if fields else "request"
        message = f"Invalid {subject}: {errors[0]['msg']}"
        return error_response(400, message)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    app.include_router(router, prefix="/api")

    return app


def run() -> None:
    settings = RelaySettings.from_env()
    setup_logging(settings.log_level)
    logger.info("Checkout relay starting", extra={"port": settings.port, "env": settings.env, "frontend": settings.frontend_url})
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
