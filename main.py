import inspect
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from openai import AsyncOpenAI
import uvicorn

from config import Settings, get_settings
from routes.analysis_route import router as analysis_router
from routes.realtime_ws import router as realtime_router
from routes.treatment_route import router as treatment_router
from services.detection.factory import build_provider
from services.realtime.orchestrator import SessionOrchestrator
from utils.logging_config import configure_logging

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logger = logging.getLogger(__name__)


def _create_openai_client(settings: Settings):
    """Return an AsyncOpenAI client when the OpenAI detection backend is selected."""
    if settings.detection_backend != "openai":
        return None
    if not os.getenv("OPENAI_API_KEY"):
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    try:
        return AsyncOpenAI()
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc


async def _close_client(client) -> None:
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception:
        logger.warning("Error while closing the OpenAI client", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the detection provider (and its OpenAI client when configured)
      - the session orchestrator with its connection registry and analysis store
    and attach them to `app.state`.
    """
    settings: Settings = app.state.settings
    openai_client = _create_openai_client(settings)
    app.state.openai_client = openai_client

    provider = build_provider(settings, openai_client)
    app.state.orchestrator = SessionOrchestrator.from_settings(settings, provider)
    logger.info("Analysis backend started (detection backend=%s)", settings.detection_backend)

    try:
        yield
    finally:
        await app.state.orchestrator.shutdown()
        if openai_client is not None:
            await _close_client(openai_client)
        logger.info("Analysis backend stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_directory, settings.log_retention_days)

    app = FastAPI(title="MUSALYTICS backend", lifespan=lifespan)
    app.state.settings = settings

    @app.get("/", include_in_schema=False)
    async def root():
        return PlainTextResponse("Backend API is running")

    @app.get("/health")
    async def health(request: Request):
        """
        Health check reporting how many websocket clients are connected.
        """
        clients = len(request.app.state.orchestrator.registry)
        return {
            "status": "ok",
            "websocket": f"connected clients: {clients}" if clients > 0 else "no clients",
        }

    @app.get("/websocket/status")
    async def websocket_status(request: Request):
        clients = len(request.app.state.orchestrator.registry)
        return {"connected": clients > 0, "clientCount": clients}

    # Register application routers
    app.include_router(analysis_router)
    app.include_router(treatment_router)
    app.include_router(realtime_router)

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
