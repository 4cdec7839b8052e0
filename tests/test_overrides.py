import copy

from event_generator.overrides import apply_overrides


def test_override_replaces_and_keeps_defaults():
    defaults = {"src_ip": "10.0.0.1", "dest_port": 443, "proto": "TCP"}
    merged = apply_overrides(defaults, {"dest_port": 22})

    assert merged["dest_port"] == 22
    assert merged["src_ip"] == "10.0.0.1"
    assert merged["proto"] == "TCP"


def test_nested_override_replaces_whole_object():
    defaults = {"alert": {"signature_id": 1, "severity": 2, "category": "scan"}}
    merged = apply_overrides(defaults, {"alert": {"severity": 1}})

    # shallow replacement: nothing of the default sub-object survives
    assert merged["alert"] == {"severity": 1}


def test_new_keys_are_added():
    merged = apply_overrides({"a": 1}, {"b": [1, 2]})
    assert merged == {"a": 1, "b": [1, 2]}


def test_defaults_are_not_mutated():
    defaults = {"flow": {"pkts": 10}, "tags": ["x"], "n": 1}
    snapshot = copy.deepcopy(defaults)

    overrides = {"n": 2, "tags": ["y"], "extra": True}
    merged = apply_overrides(defaults, overrides)
    overrides["tags"].append("z")

    assert merged["tags"] == ["y"]
    assert defaults == snapshot


def test_empty_or_missing_overrides_return_copy():
    defaults = {"a": 1}
    for overrides in (None, {}):
        merged = apply_overrides(defaults, overrides)
        assert merged == defaults
        assert merged is not defaults
