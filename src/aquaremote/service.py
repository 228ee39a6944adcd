"""FastAPI service module for the aquarium tank controller.

This module keeps only the web-facing FastAPI wiring. The connectivity core
(push channel, poller, reconciler, dispatcher, reminders) lives in
``tank_service.py``; the routes in ``api/`` expose its presentation contract.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.routes_tank import router as tank_router
from .tank_service import TankService

logger = logging.getLogger(__name__)

# Global service instance - initialized lazily on first access
_service_instance: TankService | None = None


def get_service() -> TankService:
    """Get or create the singleton tank service instance.

    This lazy initialization prevents double-initialization when uvicorn
    imports the module in both main and worker processes.
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = TankService.from_env()
    return _service_instance


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage tank service startup and shutdown via FastAPI lifespan."""
    service = get_service()
    # Make service instance available to routers
    app.state.service = service
    await service.start()
    try:
        yield
    finally:
        await service.stop()


app = FastAPI(title="Aquarium Tank Remote", lifespan=lifespan)


@app.get("/api/health")
async def health_check():
    """Health check endpoint for container monitoring."""
    service = get_service()
    return {
        "status": "healthy" if service.is_running else "stopped",
        "service": "aqua-remote",
        "version": "1.0.0",
        "device": {
            "address": service.address,
            "connection": service.health.value,
        },
    }


app.include_router(tank_router)


def main() -> None:  # pragma: no cover
    """Run the FastAPI service under Uvicorn.

    Configuration is handled via environment variables; see
    ``tank_service.py`` for the device settings and ``logging_config.py``
    for logging.
    """
    import sys

    import uvicorn

    from .logging_config import configure_logging, get_uvicorn_log_config
    from .utils import get_env_int, get_env_str

    configure_logging()

    host = get_env_str("AQUA_REMOTE_HOST", "0.0.0.0")
    port = get_env_int("AQUA_REMOTE_PORT", 8000)
    logger.info(f"Starting Aqua Remote on {host}:{port}")

    try:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_config=get_uvicorn_log_config(),
            access_log=True,
        )
    except Exception as e:
        logger.exception(f"FATAL ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
