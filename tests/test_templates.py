import pytest

from event_generator.errors import BuiltinTemplateError, TemplateNotFoundError
from event_generator.models import TemplateRequest
from event_generator.templates import TemplateStore


@pytest.fixture
def store(registry):
    return TemplateStore(registry)


def make_request(**kwargs):
    data = {"name": "Lateral movement", "category": "suricata", "event_id": "alert"}
    data.update(kwargs)
    return TemplateRequest(**data)


def test_create_assigns_custom_id(store):
    entry = store.create(make_request())
    assert entry.template.id.startswith("custom-")
    assert entry.created_at == entry.updated_at
    assert store.get(entry.template.id) == entry


def test_update_keeps_created_at(store):
    entry = store.create(make_request())
    updated = store.update(entry.template.id, make_request(name="Renamed"))

    assert updated.template.name == "Renamed"
    assert updated.created_at == entry.created_at
    assert updated.updated_at >= entry.updated_at


def test_builtin_templates_are_read_only(store):
    with pytest.raises(BuiltinTemplateError):
        store.update("alert", make_request())
    with pytest.raises(BuiltinTemplateError):
        store.delete("4624")


def test_delete_and_missing(store):
    entry = store.create(make_request())
    store.delete(entry.template.id)
    with pytest.raises(TemplateNotFoundError):
        store.get(entry.template.id)
    with pytest.raises(TemplateNotFoundError):
        store.delete(entry.template.id)


def test_list_all_merges_and_filters(store, registry):
    store.create(make_request(category="custom-cat"))

    everything = store.list_all()
    assert len(everything) == len(registry.all_templates()) + 1
    assert everything[-1]["source"] == "custom"
    assert everything[0]["source"] == "builtin"

    filtered = store.list_all("custom-cat")
    assert [t["source"] for t in filtered] == ["custom"]
    assert all(t["category"] == "windows_security" for t in store.list_all("windows_security"))


def test_lookup_finds_builtin_and_custom(store):
    entry = store.create(make_request())
    assert store.lookup(entry.template.id)["source"] == "custom"
    assert store.lookup("PortProbe")["source"] == "builtin"
    with pytest.raises(TemplateNotFoundError):
        store.lookup("nope")
