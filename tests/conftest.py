import os
import sys

import pytest

BACKEND_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "backend")
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from event_generator.registry import bootstrap_registry  # noqa: E402


@pytest.fixture
def registry():
    return bootstrap_registry()
