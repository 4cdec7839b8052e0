"""
Custom Template Store
User-defined templates kept in memory next to the builtin ones each
generator ships with.
"""
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from event_generator.errors import BuiltinTemplateError, TemplateNotFoundError
from event_generator.models import EventTemplate, TemplateRequest
from event_generator.registry import GeneratorRegistry


@dataclass(frozen=True)
class CustomTemplate:
    template: EventTemplate
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = self.template.to_dict()
        data["source"] = "custom"
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data


def builtin_dict(template: EventTemplate) -> Dict[str, Any]:
    data = template.to_dict()
    data["source"] = "builtin"
    return data


class TemplateStore:
    """
    Thread-safe store of custom templates.

    Ids are assigned on create as `custom-<uuid4>`. Ids that belong to a
    builtin template are refused for update and delete.
    """

    def __init__(self, registry: GeneratorRegistry):
        self.registry = registry
        self._lock = threading.Lock()
        self._templates: Dict[str, CustomTemplate] = {}

    def _check_not_builtin(self, template_id: str, action: str) -> None:
        if self.registry.find_builtin_template(template_id) is not None:
            raise BuiltinTemplateError(template_id, action)

    def create(self, request: TemplateRequest) -> CustomTemplate:
        now = datetime.now(timezone.utc)
        template = EventTemplate(id=f"custom-{uuid.uuid4()}", **request.model_dump())
        entry = CustomTemplate(template=template, created_at=now, updated_at=now)
        with self._lock:
            self._templates[template.id] = entry
        return entry

    def get(self, template_id: str) -> CustomTemplate:
        with self._lock:
            entry = self._templates.get(template_id)
        if entry is None:
            raise TemplateNotFoundError(template_id)
        return entry

    def list(self, category: Optional[str] = None) -> List[CustomTemplate]:
        with self._lock:
            entries = list(self._templates.values())
        if category:
            entries = [e for e in entries if e.template.category == category]
        return entries

    def update(self, template_id: str, request: TemplateRequest) -> CustomTemplate:
        self._check_not_builtin(template_id, "modify")
        with self._lock:
            existing = self._templates.get(template_id)
            if existing is None:
                raise TemplateNotFoundError(template_id)
            entry = CustomTemplate(
                template=EventTemplate(id=template_id, **request.model_dump()),
                created_at=existing.created_at,
                updated_at=datetime.now(timezone.utc),
            )
            self._templates[template_id] = entry
        return entry

    def delete(self, template_id: str) -> None:
        self._check_not_builtin(template_id, "delete")
        with self._lock:
            if self._templates.pop(template_id, None) is None:
                raise TemplateNotFoundError(template_id)

    # ---------- merged views ----------

    def list_all(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        """Builtin templates in registration order, then custom ones"""
        templates = [
            builtin_dict(t) for t in self.registry.all_templates()
            if not category or t.category == category
        ]
        templates.extend(e.to_dict() for e in self.list(category))
        return templates

    def lookup(self, template_id: str) -> Dict[str, Any]:
        """Find a template by id, custom entries first"""
        with self._lock:
            entry = self._templates.get(template_id)
        if entry is not None:
            return entry.to_dict()
        found = self.registry.find_builtin_template(template_id)
        if found is None:
            raise TemplateNotFoundError(template_id)
        return builtin_dict(found[1])
