"""
Event Models
Shared value types flowing from generators to senders.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


# Heterogeneous field values: scalars, ordered sequences and string-keyed maps
FieldValue = Union[None, str, int, float, bool, List["FieldValue"], Dict[str, "FieldValue"]]
FieldMap = Dict[str, FieldValue]


@dataclass(frozen=True)
class EventType:
    """Static descriptor of one generator family"""
    id: str
    name: str
    category: str
    description: str
    event_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EventTemplate:
    """Static descriptor of one template a generator (or the custom store) offers"""
    id: str
    name: str
    category: str
    event_id: str = ""
    format: str = "json"
    description: str = ""
    sourcetype: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GeneratedEvent:
    """
    A single synthetic event.

    raw_event is the exact wire payload; senders transmit it verbatim and
    never rebuild it from fields.
    """
    id: str
    type: str
    event_id: str
    timestamp: datetime
    raw_event: str
    fields: FieldMap
    sourcetype: str

    def __post_init__(self):
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        object.__setattr__(self, "timestamp", ts.astimezone(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "raw_event": self.raw_event,
            "fields": self.fields,
            "sourcetype": self.sourcetype,
        }


# ============================================
# PYDANTIC REQUEST MODELS
# ============================================

class GenerateRequest(BaseModel):
    """Request to generate a batch of events"""
    event_type: str
    event_id: Optional[str] = None
    count: int = Field(default=1, ge=1, le=10000)
    destination_id: Optional[str] = None
    overrides: Dict[str, Any] = Field(default_factory=dict)


class PreviewRequest(BaseModel):
    """Request to preview a single event"""
    event_type: str
    event_id: Optional[str] = None
    overrides: Dict[str, Any] = Field(default_factory=dict)


class TemplateRequest(BaseModel):
    """Body for creating or updating a custom template"""
    name: str
    category: str
    event_id: str = ""
    format: str = "json"
    description: str = ""
    sourcetype: str = ""
