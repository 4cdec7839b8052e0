"""
Noise Models
Request bodies and configuration for continuous background generation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

MIN_RATE = 0.1
MAX_RATE = 10000.0
DEFAULT_WEIGHT = 10


class EnabledEventSource(BaseModel):
    """One event type taking part in noise generation"""
    event_type_id: str
    template_ids: List[str] = Field(default_factory=list)  # empty means all templates
    weight: int = 0                                        # relative frequency, 0 means default
    enabled: bool = True
    destination_id: Optional[str] = None                   # falls back to the global destination


class NoiseConfig(BaseModel):
    destination_id: Optional[str] = None
    rate_per_second: float = Field(ge=MIN_RATE, le=MAX_RATE)
    enabled_sources: List[EnabledEventSource]


class NoiseStartRequest(NoiseConfig):
    """Body for starting noise generation"""


class NoiseUpdateRequest(BaseModel):
    """Body for changing a running generator; unset fields stay as they are"""
    rate_per_second: Optional[float] = Field(default=None, ge=MIN_RATE, le=MAX_RATE)
    enabled_sources: Optional[List[EnabledEventSource]] = None
