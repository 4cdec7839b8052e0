"""
Event Generator API Router
Endpoints for browsing event types, generating events and managing
templates and destinations.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from event_generator.errors import (
    BuiltinTemplateError,
    DeliveryError,
    EventGeneratorError,
    EventTypeNotFoundError,
    TemplateNotFoundError,
    UnknownTemplateError,
)
from event_generator.models import GeneratedEvent, GenerateRequest, PreviewRequest, TemplateRequest
from event_generator.registry import GeneratorRegistry
from event_generator.templates import TemplateStore
from delivery.base import DEFAULT_HOSTNAME, get_sender, test_destination
from delivery.config import ConnectionTestRequest, DestinationRequest
from delivery.store import DestinationStore

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 5

# Create router
router = APIRouter(prefix="/api", tags=["Event Generator"])


# ============== DEPENDENCIES ==============

def get_registry(request: Request) -> GeneratorRegistry:
    return request.app.state.registry


def get_template_store(request: Request) -> TemplateStore:
    return request.app.state.templates


def get_destination_store(request: Request) -> DestinationStore:
    return request.app.state.destinations


def get_sender_hostname(request: Request) -> str:
    return request.app.state.settings.sender_hostname


# ============== GENERATION ==============

def _resolve_template(generator, event_id: Optional[str]) -> str:
    if event_id:
        return event_id
    templates = generator.list_templates()
    return templates[0].id if templates else ""


def generate_events(
    registry: GeneratorRegistry,
    request: GenerateRequest,
    destinations: Optional[DestinationStore] = None,
    hostname: str = DEFAULT_HOSTNAME,
) -> Dict[str, Any]:
    """
    Generate `request.count` events and optionally deliver them.

    Lookup failures (unknown event type or template) raise. Failures while
    generating individual events or delivering them are collected in the
    `errors` list of the result instead.
    """
    generator = registry.get(request.event_type)
    template_id = _resolve_template(generator, request.event_id)
    generator.get_template(template_id)

    events: List[GeneratedEvent] = []
    errors: List[str] = []
    for _ in range(request.count):
        try:
            events.append(generator.generate(template_id, request.overrides))
        except EventGeneratorError as e:
            errors.append(str(e))

    events_sent = 0
    destination_name = ""
    if request.destination_id:
        destination = destinations.get(request.destination_id) if destinations else None
        if destination is None:
            errors.append("Destination not found")
        else:
            destination_name = destination.name
            try:
                sender = get_sender(destination.type, destination.config, hostname)
            except DeliveryError as e:
                errors.append(f"Failed to create sender: {e}")
            else:
                for event in events:
                    try:
                        sender.send(event)
                        events_sent += 1
                    except DeliveryError as e:
                        errors.append(f"Send error: {e}")
                try:
                    sender.close()
                except DeliveryError as e:
                    errors.append(f"Close error: {e}")
                destinations.record_usage(destination.id, events_sent)

    logger.info(
        "Generated %d %s/%s events, sent %d, %d errors",
        len(events), request.event_type, template_id, events_sent, len(errors)
    )
    return {
        "success": not errors,
        "events_created": len(events),
        "events_sent": events_sent,
        "destination": destination_name,
        "errors": errors,
        "preview": [e.to_dict() for e in events[:PREVIEW_LIMIT]],
    }


# ============== EVENT TYPES ==============

@router.get("/health")
async def health_check(registry: GeneratorRegistry = Depends(get_registry)):
    """Service liveness"""
    return {
        "status": "healthy",
        "service": "siem-event-generator",
        "event_types": len(registry),
    }


@router.get("/event-types")
async def list_event_types(registry: GeneratorRegistry = Depends(get_registry)):
    """List all registered event types"""
    event_types = [t.to_dict() for t in registry.list_event_types()]
    return {
        "event_types": event_types,
        "count": len(event_types),
    }


@router.get("/event-types/{event_type}/schema")
async def get_event_type_schema(
    event_type: str,
    registry: GeneratorRegistry = Depends(get_registry)
):
    """Event type descriptor together with its builtin templates"""
    try:
        generator = registry.get(event_type)
    except EventTypeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "event_type": generator.describe_type().to_dict(),
        "templates": [t.to_dict() for t in generator.list_templates()],
    }


@router.get("/event-sources")
async def get_event_sources(registry: GeneratorRegistry = Depends(get_registry)):
    """Event types and their templates grouped by category"""
    return {"categories": registry.event_sources()}


@router.post("/generate")
def generate(
    request: GenerateRequest,
    registry: GeneratorRegistry = Depends(get_registry),
    destinations: DestinationStore = Depends(get_destination_store),
    hostname: str = Depends(get_sender_hostname)
):
    """
    Generate a batch of events.

    When destination_id is set the events are also delivered; delivery
    failures are reported in the `errors` list.
    """
    try:
        return generate_events(registry, request, destinations, hostname)
    except EventTypeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UnknownTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/generate/preview")
async def preview_event(
    request: PreviewRequest,
    registry: GeneratorRegistry = Depends(get_registry)
):
    """Generate a single event without delivering it"""
    try:
        generator = registry.get(request.event_type)
        template_id = _resolve_template(generator, request.event_id)
        event = generator.generate(template_id, request.overrides)
    except EventTypeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UnknownTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EventGeneratorError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return event.to_dict()


# ============== TEMPLATES ==============

@router.get("/templates")
async def list_templates(
    category: Optional[str] = None,
    templates: TemplateStore = Depends(get_template_store)
):
    """List builtin and custom templates, optionally filtered by category"""
    items = templates.list_all(category)
    return {
        "templates": items,
        "count": len(items),
    }


@router.get("/templates/{template_id}")
async def get_template(template_id: str, templates: TemplateStore = Depends(get_template_store)):
    try:
        return templates.lookup(template_id)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/templates", status_code=201)
async def create_template(
    request: TemplateRequest,
    templates: TemplateStore = Depends(get_template_store)
):
    return templates.create(request).to_dict()


@router.put("/templates/{template_id}")
async def update_template(
    template_id: str,
    request: TemplateRequest,
    templates: TemplateStore = Depends(get_template_store)
):
    try:
        return templates.update(template_id, request).to_dict()
    except BuiltinTemplateError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/templates/{template_id}")
async def delete_template(template_id: str, templates: TemplateStore = Depends(get_template_store)):
    try:
        templates.delete(template_id)
    except BuiltinTemplateError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Template deleted"}


# ============== DESTINATIONS ==============

def _destination_or_404(destinations: DestinationStore, destination_id: str):
    destination = destinations.get(destination_id)
    if destination is None:
        raise HTTPException(status_code=404, detail="Destination not found")
    return destination


@router.get("/destinations")
async def list_destinations(destinations: DestinationStore = Depends(get_destination_store)):
    items = [d.model_dump(mode="json") for d in destinations.list()]
    return {
        "destinations": items,
        "count": len(items),
    }


@router.get("/destinations/{destination_id}")
async def get_destination(
    destination_id: str,
    destinations: DestinationStore = Depends(get_destination_store)
):
    return _destination_or_404(destinations, destination_id).model_dump(mode="json")


@router.post("/destinations", status_code=201)
async def create_destination(
    request: DestinationRequest,
    destinations: DestinationStore = Depends(get_destination_store)
):
    return destinations.create(request).model_dump(mode="json")


@router.put("/destinations/{destination_id}")
async def update_destination(
    destination_id: str,
    request: DestinationRequest,
    destinations: DestinationStore = Depends(get_destination_store)
):
    destination = destinations.update(destination_id, request)
    if destination is None:
        raise HTTPException(status_code=404, detail="Destination not found")
    return destination.model_dump(mode="json")


@router.delete("/destinations/{destination_id}")
async def delete_destination(
    destination_id: str,
    destinations: DestinationStore = Depends(get_destination_store)
):
    if not destinations.delete(destination_id):
        raise HTTPException(status_code=404, detail="Destination not found")
    return {"message": "Destination deleted"}


@router.post("/destinations/test")
def test_destination_config(
    request: ConnectionTestRequest,
    hostname: str = Depends(get_sender_hostname)
):
    """Test a destination configuration without saving it"""
    return test_destination(request.type, request.config, hostname)


@router.post("/destinations/{destination_id}/test")
def test_saved_destination(
    destination_id: str,
    destinations: DestinationStore = Depends(get_destination_store),
    hostname: str = Depends(get_sender_hostname)
):
    """Run the connectivity check for a stored destination"""
    destination = _destination_or_404(destinations, destination_id)
    return test_destination(destination.type, destination.config, hostname)
