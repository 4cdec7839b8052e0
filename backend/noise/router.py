"""
Noise API Router
Start, stop, reconfigure and observe continuous background generation.
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request

from event_generator.errors import NoiseError
from event_generator.router import get_destination_store
from delivery.config import Destination
from delivery.store import DestinationStore
from noise.generator import NoiseGenerator
from noise.models import NoiseConfig, NoiseStartRequest, NoiseUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/noise", tags=["Noise"])


def get_noise_generator(request: Request) -> NoiseGenerator:
    return request.app.state.noise


def _required_destinations(request: NoiseStartRequest, store: DestinationStore) -> Dict[str, Destination]:
    ids = set()
    if request.destination_id:
        ids.add(request.destination_id)
    for source in request.enabled_sources:
        if source.enabled and source.destination_id:
            ids.add(source.destination_id)

    if not ids:
        raise HTTPException(
            status_code=400,
            detail="at least one destination must be configured (global or per-source)"
        )

    destinations = {}
    for destination_id in sorted(ids):
        destination = store.get(destination_id)
        if destination is None:
            raise HTTPException(status_code=404, detail=f"destination not found: {destination_id}")
        destinations[destination_id] = destination
    return destinations


@router.post("/start")
def start_noise(
    request: NoiseStartRequest,
    noise: NoiseGenerator = Depends(get_noise_generator),
    store: DestinationStore = Depends(get_destination_store)
):
    """Start continuous generation toward the configured destinations"""
    if not any(source.enabled for source in request.enabled_sources):
        raise HTTPException(status_code=400, detail="at least one source must be enabled")

    destinations = _required_destinations(request, store)
    logger.info("Starting noise generation toward %s", ", ".join(destinations))
    config = NoiseConfig(**request.model_dump())
    try:
        noise.start(config, destinations)
    except NoiseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "message": "Noise generation started", "status": noise.status()}


@router.post("/stop")
def stop_noise(noise: NoiseGenerator = Depends(get_noise_generator)):
    try:
        noise.stop()
    except NoiseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "message": "Noise generation stopped", "status": noise.status()}


@router.get("/status")
async def noise_status(noise: NoiseGenerator = Depends(get_noise_generator)):
    return noise.status()


@router.put("/config")
async def update_noise_config(
    request: NoiseUpdateRequest,
    noise: NoiseGenerator = Depends(get_noise_generator)
):
    """Change the rate or the enabled sources of a running generation"""
    try:
        noise.update_config(request)
    except NoiseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "status": noise.status()}


@router.get("/stats")
async def noise_stats(noise: NoiseGenerator = Depends(get_noise_generator)):
    return noise.stats()
