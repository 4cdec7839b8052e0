"""
Destination Configuration
Pydantic models describing where generated events are delivered.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


DEFAULT_FACILITY = 1        # user-level
DEFAULT_SEVERITY = 6        # informational
DEFAULT_SYSLOG_FORMAT = "rfc3164"
DEFAULT_BATCH_SIZE = 100
DEFAULT_ROTATE_KEEP = 5

SYSLOG_FORMATS = ("rfc3164", "rfc5424")


class DestinationType(str, Enum):
    FILE = "file"
    SYSLOG_TCP = "syslog-tcp"
    SYSLOG_UDP = "syslog-udp"
    HEC = "hec"

    @classmethod
    def _missing_(cls, value):
        # accept underscore spellings such as "syslog_tcp"
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


def _normalize_type(value):
    if isinstance(value, str):
        return value.strip().lower().replace("_", "-")
    return value


DestinationTypeField = Annotated[DestinationType, BeforeValidator(_normalize_type)]


class DestinationConfig(BaseModel):
    """
    Protocol knobs for one destination.

    Every field is optional here; each sender checks the fields its protocol
    requires at construction. Unset knobs are None and resolve to the
    protocol defaults through the accessors below.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    # Syslog
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    facility: Optional[int] = Field(default=None, ge=0, le=23)
    severity: Optional[int] = Field(default=None, ge=0, le=7)
    format: Optional[str] = None

    # HEC
    url: Optional[str] = None
    token: Optional[str] = None
    index: Optional[str] = None
    source: Optional[str] = None
    sourcetype: Optional[str] = None
    verify_ssl: bool = True
    batch_size: Optional[int] = Field(default=None, ge=0)

    # File
    file_path: Optional[str] = None
    max_size_mb: Optional[int] = Field(default=None, ge=0)
    rotate_keep: Optional[int] = Field(default=None, ge=0)

    @field_validator("format")
    @classmethod
    def check_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        value = value.lower()
        if value not in SYSLOG_FORMATS:
            raise ValueError(f"format must be one of {', '.join(SYSLOG_FORMATS)}")
        return value

    def syslog_facility(self) -> int:
        return DEFAULT_FACILITY if self.facility is None else self.facility

    def syslog_severity(self) -> int:
        return DEFAULT_SEVERITY if self.severity is None else self.severity

    def syslog_format(self) -> str:
        return self.format or DEFAULT_SYSLOG_FORMAT

    def hec_batch_size(self) -> int:
        return DEFAULT_BATCH_SIZE if self.batch_size is None else self.batch_size

    def rotation_bytes(self) -> int:
        """Size threshold for rotation in bytes, 0 when rotation is off"""
        return (self.max_size_mb or 0) * 1024 * 1024

    def rotation_keep(self) -> int:
        return self.rotate_keep or DEFAULT_ROTATE_KEEP


class DestinationRequest(BaseModel):
    """Body for creating or updating a destination"""
    name: str
    type: DestinationTypeField
    description: str = ""
    config: DestinationConfig = Field(default_factory=DestinationConfig)


class ConnectionTestRequest(BaseModel):
    """Body for testing an unsaved destination"""
    type: DestinationTypeField
    config: DestinationConfig = Field(default_factory=DestinationConfig)


class Destination(BaseModel):
    """A stored delivery target"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: DestinationTypeField
    description: str = ""
    config: DestinationConfig
    created_at: datetime
    updated_at: datetime
    last_used: Optional[datetime] = None
    events_sent: int = 0
