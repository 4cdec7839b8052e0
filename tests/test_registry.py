import pytest

from event_generator.errors import DuplicateRegistrationError, EventTypeNotFoundError
from event_generator.generators import SuricataGenerator
from event_generator.registry import GeneratorRegistry


def test_bootstrap_registers_builtin_generators(registry):
    ids = [t.id for t in registry.list_event_types()]
    assert ids == ["suricata", "aws_guardduty", "windows_security", "metrics_system"]
    assert len(registry) == 4
    assert "suricata" in registry


def test_lookup_miss_raises_not_found(registry):
    with pytest.raises(EventTypeNotFoundError):
        registry.get("okta")


def test_duplicate_registration_is_rejected():
    registry = GeneratorRegistry()
    registry.register(SuricataGenerator())
    with pytest.raises(DuplicateRegistrationError):
        registry.register(SuricataGenerator())


def test_find_builtin_template(registry):
    event_type, template = registry.find_builtin_template("4624")
    assert event_type.id == "windows_security"
    assert template.format == "xml"
    assert registry.find_builtin_template("custom-123") is None


def test_event_sources_grouped_by_category(registry):
    sources = registry.event_sources()
    assert set(sources) == {"network", "cloud", "windows", "metrics"}
    network = sources["network"][0]
    assert network["event_type"]["id"] == "suricata"
    assert [t["id"] for t in network["templates"]][:2] == ["alert", "flow"]


def test_all_templates_in_registration_order(registry):
    templates = registry.all_templates()
    assert templates[0].id == "alert"
    assert templates[-1].id == "temperature"
