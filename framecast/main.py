"""FastAPI application for Framecast."""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from framecast.api.routes import (
    framecast_exception_handler,
    generic_exception_handler,
    router,
    validation_exception_handler,
)
from framecast.config import get_settings
from framecast.utils.errors import FramecastError


def create_app() -> FastAPI:
    """Build the API application."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Framecast API")
    app.include_router(router)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(FramecastError, framecast_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("framecast.main:app", host="0.0.0.0", port=3000)
