"""
Generator Contract
Base class every event generator plugin derives from, plus the shared
random value helpers the plugins draw their default field maps from.
"""
import ipaddress
import json
import random
import string
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from event_generator.errors import SerializationError, UnknownTemplateError
from event_generator.models import EventTemplate, EventType, FieldMap, GeneratedEvent
from event_generator.overrides import apply_overrides


EVE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"

COMMON_PORTS = {
    "http": 80,
    "https": 443,
    "ssh": 22,
    "rdp": 3389,
    "dns": 53,
    "smtp": 25,
    "smtps": 465,
    "ftp": 21,
    "mysql": 3306,
    "mssql": 1433,
    "ldap": 389,
    "ldaps": 636,
    "smb": 445,
    "kerberos": 88,
}

_ALPHANUMERIC = string.ascii_letters + string.digits


class EventGenerator:
    """
    Base class for event generators.

    Subclasses set `event_type`, `templates` and `sourcetype`, and register a
    builder per template id in `self.builders`. A builder receives the
    generation time and returns the default field map for that template.
    """

    event_type: EventType
    templates: List[EventTemplate] = []
    sourcetype: str = ""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.builders: Dict[str, Callable[[datetime], FieldMap]] = {}

    # ---------- contract ----------

    def describe_type(self) -> EventType:
        return self.event_type

    def list_templates(self) -> List[EventTemplate]:
        return list(self.templates)

    def get_template(self, template_id: str) -> EventTemplate:
        for template in self.templates:
            if template.id == template_id:
                return template
        raise UnknownTemplateError(template_id, self.event_type.id)

    def generate(
        self,
        template_id: str,
        overrides: Optional[FieldMap] = None
    ) -> GeneratedEvent:
        """
        Build one event for `template_id`.

        Raises UnknownTemplateError for a template this generator does not
        support and SerializationError when the merged map cannot be encoded.
        """
        template = self.get_template(template_id)
        builder = self.builders.get(template.id)
        if builder is None:
            raise UnknownTemplateError(template_id, self.event_type.id)

        now = datetime.now(timezone.utc)
        fields = apply_overrides(builder(now), overrides)
        raw_event = self.serialize(template, fields)

        return GeneratedEvent(
            id=str(uuid.uuid4()),
            type=self.event_type.id,
            event_id=template.event_id or template.id,
            timestamp=now,
            raw_event=raw_event,
            fields=fields,
            sourcetype=template.sourcetype or self.sourcetype,
        )

    def serialize(self, template: EventTemplate, fields: FieldMap) -> str:
        """Default serialization rule: indented JSON of the whole field map"""
        try:
            return json.dumps(fields, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"failed to encode {self.event_type.id}/{template.id} event: {e}"
            ) from e

    # ---------- random value helpers ----------

    def random_int(self, low: int, high: int) -> int:
        return self.rng.randint(low, high)

    def random_choice(self, choices):
        if not choices:
            return ""
        return self.rng.choice(choices)

    def random_bool(self) -> bool:
        return self.rng.random() < 0.5

    def random_string(self, length: int) -> str:
        return "".join(self.rng.choice(_ALPHANUMERIC) for _ in range(length))

    def random_hex(self, length: int) -> str:
        return "".join(self.rng.choice("0123456789abcdef") for _ in range(length))

    def random_ipv4_internal(self) -> str:
        prefix = self.random_choice(["10.", "192.168.", "172.16."])
        if prefix == "10.":
            return f"10.{self.random_int(0, 255)}.{self.random_int(0, 255)}.{self.random_int(1, 254)}"
        if prefix == "192.168.":
            return f"192.168.{self.random_int(0, 255)}.{self.random_int(1, 254)}"
        return f"172.{self.random_int(16, 31)}.{self.random_int(0, 255)}.{self.random_int(1, 254)}"

    def random_ipv4_external(self) -> str:
        while True:
            ip = ipaddress.IPv4Address(
                f"{self.random_int(1, 223)}.{self.random_int(0, 255)}."
                f"{self.random_int(0, 255)}.{self.random_int(1, 254)}"
            )
            if ip.is_global:
                return str(ip)

    def random_mac(self) -> str:
        octets = [self.random_int(0, 255) for _ in range(6)]
        octets[0] = (octets[0] | 2) & 0xFE  # locally administered, unicast
        return ":".join(f"{o:02X}" for o in octets)

    def random_port(self) -> int:
        return self.random_int(1024, 65535)

    def random_common_port(self) -> int:
        return COMMON_PORTS[self.random_choice(sorted(COMMON_PORTS))]

    def random_username(self) -> str:
        prefix = self.random_choice(["user", "admin", "svc", "app", "sys"])
        return f"{prefix}_{self.random_string(4)}"

    def random_hostname(self) -> str:
        prefix = self.random_choice(["WS", "SRV", "DC", "WEB", "DB", "APP"])
        return f"{prefix}-{self.random_string(6).upper()}"

    def random_domain(self) -> str:
        return self.random_choice(["CORP", "CONTOSO", "ACME", "FABRIKAM", "NORTHWIND"])

    def random_fqdn(self) -> str:
        return f"{self.random_hostname().lower()}.{self.random_domain().lower()}.local"

    def random_guid(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))

    def random_sid(self) -> str:
        return "S-1-5-21-{}-{}-{}-{}".format(
            self.random_int(100000000, 999999999),
            self.random_int(100000000, 999999999),
            self.random_int(100000000, 999999999),
            self.random_int(1000, 9999),
        )

    def random_process_name(self) -> str:
        return self.random_choice([
            "explorer.exe", "chrome.exe", "firefox.exe", "notepad.exe",
            "cmd.exe", "powershell.exe", "svchost.exe", "services.exe",
            "lsass.exe", "winlogon.exe", "taskhostw.exe", "RuntimeBroker.exe",
        ])
