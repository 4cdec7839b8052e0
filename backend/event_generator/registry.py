"""
Generator Registry
Holds one generator instance per event type, populated once at startup.
"""
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from event_generator.base import EventGenerator
from event_generator.errors import DuplicateRegistrationError, EventTypeNotFoundError
from event_generator.models import EventTemplate, EventType

logger = logging.getLogger(__name__)


class GeneratorRegistry:
    """
    Maps event type identifiers to generator instances.

    Registration happens during bootstrap only; afterwards the registry is
    read-only and lookups need no locking. Callers that register after
    startup must bring their own synchronization.
    """

    def __init__(self):
        self._generators: Dict[str, EventGenerator] = {}

    def register(self, generator: EventGenerator) -> None:
        type_id = generator.describe_type().id
        if type_id in self._generators:
            raise DuplicateRegistrationError(type_id)
        self._generators[type_id] = generator
        logger.debug("Registered generator %s", type_id)

    def get(self, event_type: str) -> EventGenerator:
        try:
            return self._generators[event_type]
        except KeyError:
            raise EventTypeNotFoundError(event_type) from None

    def __contains__(self, event_type: str) -> bool:
        return event_type in self._generators

    def __iter__(self) -> Iterator[EventGenerator]:
        return iter(self._generators.values())

    def __len__(self) -> int:
        return len(self._generators)

    def list_event_types(self) -> List[EventType]:
        return [g.describe_type() for g in self._generators.values()]

    def all_templates(self) -> List[EventTemplate]:
        templates: List[EventTemplate] = []
        for generator in self._generators.values():
            templates.extend(generator.list_templates())
        return templates

    def find_builtin_template(self, template_id: str) -> Optional[Tuple[EventType, EventTemplate]]:
        for generator in self._generators.values():
            for template in generator.list_templates():
                if template.id == template_id:
                    return generator.describe_type(), template
        return None

    def event_sources(self) -> Dict[str, List[dict]]:
        """Event types with their templates, grouped by category"""
        categories: Dict[str, List[dict]] = {}
        for generator in self._generators.values():
            event_type = generator.describe_type()
            categories.setdefault(event_type.category, []).append({
                "event_type": event_type.to_dict(),
                "templates": [t.to_dict() for t in generator.list_templates()],
            })
        return categories


def bootstrap_registry() -> GeneratorRegistry:
    """
    Construct every builtin generator and register it.

    Call once during process initialization; the returned registry is the
    sole owner of the generator instances.
    """
    from event_generator.generators import BUILTIN_GENERATORS

    registry = GeneratorRegistry()
    for generator_cls in BUILTIN_GENERATORS:
        registry.register(generator_cls())

    logger.info("Generator registry ready with %d event types", len(registry))
    return registry
