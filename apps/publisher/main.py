"""FastAPI application entry point. Serve with `publisher-api` or `python -m apps.publisher.main`."""

import logging
import os

import uvicorn
from fastapi import FastAPI

from apps.publisher.routes import cdn, health
from apps.publisher.services.auth import auth_middleware

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Publisher API", version="0.1.0")

app.middleware("http")(auth_middleware)

app.include_router(health.router, tags=["health"])
app.include_router(cdn.router, prefix="/cdn", tags=["cdn"])


def run() -> None:
    """Serve the API with uvicorn on API_HOST:API_PORT (default 0.0.0.0:8000)."""
    try:
        port = int(os.getenv("API_PORT", "8000"))
    except ValueError:
        port = 8000
    uvicorn.run(app, host=os.getenv("API_HOST", "0.0.0.0"), port=port)


if __name__ == "__main__":
    run()
