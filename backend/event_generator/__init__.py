"""
Event Generator Module
Plugin generators producing synthetic security events, the registry that
holds them, and the API exposing them.
"""
from event_generator.models import (
    EventTemplate,
    EventType,
    GeneratedEvent,
    GenerateRequest,
    PreviewRequest,
    TemplateRequest,
)
from event_generator.errors import (
    EventGeneratorError,
    UnknownTemplateError,
    EventTypeNotFoundError,
    SerializationError,
)
from event_generator.overrides import apply_overrides
from event_generator.base import EventGenerator
from event_generator.registry import GeneratorRegistry, bootstrap_registry

__all__ = [
    'EventTemplate',
    'EventType',
    'GeneratedEvent',
    'GenerateRequest',
    'PreviewRequest',
    'TemplateRequest',
    'EventGeneratorError',
    'UnknownTemplateError',
    'EventTypeNotFoundError',
    'SerializationError',
    'apply_overrides',
    'EventGenerator',
    'GeneratorRegistry',
    'bootstrap_registry',
]
