import json
import random
import xml.etree.ElementTree as ET
from datetime import timezone

import pytest

from event_generator.errors import SerializationError, UnknownTemplateError
from event_generator.generators import BUILTIN_GENERATORS
from event_generator.generators.windows_security import (
    EVENT_NAMESPACE,
    SYSTEM_KEY,
    WindowsSecurityGenerator,
    xml_text,
)

NS = {"e": EVENT_NAMESPACE}


def _all_templates():
    for cls in BUILTIN_GENERATORS:
        for template in cls.templates:
            yield cls, template.id


@pytest.mark.parametrize("cls,template_id", list(_all_templates()))
def test_generated_event_round_trips(cls, template_id):
    generator = cls(rng=random.Random(7))
    event = generator.generate(template_id, {})

    assert event.type == generator.describe_type().id
    assert event.event_id == generator.get_template(template_id).event_id
    assert event.timestamp.tzinfo == timezone.utc
    assert event.sourcetype

    if generator.get_template(template_id).format == "xml":
        root = ET.fromstring(event.raw_event)
        data = {d.get("Name"): d.text or "" for d in root.findall("e:EventData/e:Data", NS)}
        expected = {k: xml_text(v) for k, v in event.fields.items() if k != SYSTEM_KEY}
        assert data == expected
        system = event.fields[SYSTEM_KEY]
        assert root.find("e:System/e:EventID", NS).text == str(system["EventID"])
        assert root.find("e:System/e:Computer", NS).text == system["Computer"]
    else:
        assert json.loads(event.raw_event) == event.fields


@pytest.mark.parametrize("cls", BUILTIN_GENERATORS)
def test_unknown_template_is_rejected(cls):
    generator = cls()
    with pytest.raises(UnknownTemplateError) as excinfo:
        generator.generate("no-such-template", {})
    assert "no-such-template" in str(excinfo.value)


@pytest.mark.parametrize("cls", BUILTIN_GENERATORS)
def test_descriptor_lists_every_template(cls):
    generator = cls()
    event_type = generator.describe_type()
    templates = generator.list_templates()
    template_ids = [t.id for t in templates]

    assert [t.event_id for t in templates] == event_type.event_ids
    assert set(generator.builders) == set(template_ids)


def test_overrides_flow_into_fields_and_raw_event():
    generator = BUILTIN_GENERATORS[0]()
    event = generator.generate("alert", {"src_ip": "203.0.113.9", "alert": {"severity": 1}})

    assert event.fields["src_ip"] == "203.0.113.9"
    assert event.fields["alert"] == {"severity": 1}
    assert json.loads(event.raw_event)["alert"] == {"severity": 1}


def test_windows_override_lands_in_event_data():
    event = WindowsSecurityGenerator().generate("4625", {"TargetUserName": "mallory"})
    root = ET.fromstring(event.raw_event)
    names = {d.get("Name"): d.text for d in root.findall("e:EventData/e:Data", NS)}
    assert names["TargetUserName"] == "mallory"


def test_event_ids_are_unique():
    generator = BUILTIN_GENERATORS[0]()
    ids = {generator.generate("flow").id for _ in range(50)}
    assert len(ids) == 50


def test_list_templates_returns_copy():
    generator = BUILTIN_GENERATORS[0]()
    generator.list_templates().clear()
    assert generator.list_templates()


@pytest.mark.parametrize("bad", ["bad\x01name", "tab\x0bstop", "nul\x00", "\ufffe"])
def test_windows_rejects_characters_xml_cannot_carry(bad):
    generator = WindowsSecurityGenerator()
    with pytest.raises(SerializationError):
        generator.generate("4624", {"TargetUserName": bad})


def test_windows_rejects_illegal_field_name():
    with pytest.raises(SerializationError):
        WindowsSecurityGenerator().generate("4688", {"Bad\x02Name": "x"})


def test_windows_keeps_allowed_whitespace_and_unicode():
    value = "line one\nline two\tend é中"
    event = WindowsSecurityGenerator().generate("4624", {"TargetUserName": value})
    root = ET.fromstring(event.raw_event)
    names = {d.get("Name"): d.text for d in root.findall("e:EventData/e:Data", NS)}
    assert names["TargetUserName"] == value
