"""
Override Merge
Overlays a caller-supplied sparse map onto a generator's default field map.
"""
import copy
from typing import Mapping, Optional

from event_generator.models import FieldMap, FieldValue


def apply_overrides(
    defaults: Mapping[str, FieldValue],
    overrides: Optional[Mapping[str, FieldValue]] = None
) -> FieldMap:
    """
    Shallow key replacement.

    Every key in `overrides` replaces the default entry wholesale, nested maps
    included; keys not overridden keep their default; new keys are added.
    Returns a new dict, `defaults` is never mutated.
    """
    result = dict(defaults)
    if not overrides:
        return result

    for key, value in overrides.items():
        # copy so later mutation by the caller does not leak into the event
        result[key] = copy.deepcopy(value)

    return result
