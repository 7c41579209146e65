"""FastAPI application hosting software upgrade runs."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from swupgrade.utils.logging import setup_logger
from swupgrade.utils.config import load_settings
from swupgrade.services.state_manager import StateManager
from swupgrade.api.routes import router

SETTINGS_FILE = "./config/upgrader.json"
PORT = 12316


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Load settings from ./config/upgrader.json (defaults if missing)
    - Initialize logger
    - Create the StateManager for this application

    Shutdown:
    - Abort a run still in progress
    """
    settings = load_settings(SETTINGS_FILE)
    logger = setup_logger("swupgrade", settings.log_file, level=settings.log_level)
    logger.info("Software upgrade service starting up...")

    app.state.settings = settings
    app.state.state_manager = StateManager()
    app.state.abort_event = None

    logger.info(
        f"Device-api at {settings.device_api_url}, "
        f"orchestrator at {settings.orchestrator_url}"
    )
    logger.info(f"Software upgrade service ready on port {PORT}")

    yield

    if app.state.abort_event is not None:
        logger.warning("Shutting down with an upgrade in progress, aborting it")
        app.state.abort_event.set()
    logger.info("Software upgrade service shutting down...")


app = FastAPI(
    title="Element Software Upgrade",
    description="Pushes a software upgrade to a managed element and validates it",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "swupgrade", "version": "1.0.0"}


def main():
    """Main entry point for running the server."""
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=PORT,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
