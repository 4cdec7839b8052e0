"""
SIEM Event Generator API
FastAPI backend producing synthetic security telemetry and shipping it to
files, syslog servers and HEC endpoints.
"""
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from settings import Settings, get_settings
from event_generator.registry import bootstrap_registry
from event_generator.templates import TemplateStore
from event_generator.router import router as event_router
from delivery.store import DestinationStore
from noise.generator import NoiseGenerator
from noise.router import router as noise_router

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger"""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    root.addHandler(handler)
    root.setLevel(level)


# ========================= APP SETUP =========================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the API.

    The generator registry is bootstrapped here, once, before any request
    can be served; the template and destination stores live alongside it
    on app.state, together with the noise generator.
    """
    settings = settings or get_settings()

    app = FastAPI(title="SIEM Event Generator API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = bootstrap_registry()
    destinations = DestinationStore()
    destinations.seed_default(settings.default_output_file)

    app.state.settings = settings
    app.state.registry = registry
    app.state.templates = TemplateStore(registry)
    app.state.destinations = destinations
    app.state.noise = NoiseGenerator(registry, settings.sender_hostname)

    app.include_router(event_router)
    app.include_router(noise_router)

    @app.on_event("shutdown")
    def stop_noise_on_shutdown():
        if app.state.noise.running:
            app.state.noise.stop()

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting SIEM Event Generator on port %d", settings.port)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
