import random
import threading
import time
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from event_generator.errors import ConfigurationError, NoiseError, TransportError
from delivery.base import Sender
from delivery.config import Destination, DestinationConfig, DestinationType
from main import create_app
from noise.generator import NoiseGenerator, build_weighted_pool
from noise.models import EnabledEventSource, NoiseConfig, NoiseUpdateRequest
from settings import Settings


class RecordingSender(Sender):
    def __init__(self, fail=False):
        super().__init__(DestinationConfig())
        self.events = []
        self.closed = False
        self.fail = fail

    def send(self, event):
        if self.fail:
            raise TransportError("connection refused")
        with self._lock:
            self.events.append(event)

    def test(self):
        pass

    def close(self):
        self.closed = True


class SenderFactory:
    """Hands out RecordingSenders and keeps every one it built"""

    def __init__(self, fail_on=None, failing_sends=False):
        self.created = []
        self.fail_on = fail_on
        self.failing_sends = failing_sends

    def __call__(self, destination_type, config, hostname):
        if config.file_path == self.fail_on:
            raise ConfigurationError("file_path is required")
        sender = RecordingSender(fail=self.failing_sends)
        self.created.append(sender)
        return sender


def destination(destination_id):
    now = datetime.now(timezone.utc)
    return Destination(
        id=destination_id,
        name=destination_id,
        type=DestinationType.FILE,
        config=DestinationConfig(file_path=destination_id),
        created_at=now,
        updated_at=now,
    )


def destinations(*ids):
    return {i: destination(i) for i in ids}


def wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return False


# ---------- weighted pool ----------

def test_pool_splits_weight_across_templates(registry):
    config = NoiseConfig(
        destination_id="a",
        rate_per_second=1,
        enabled_sources=[
            EnabledEventSource(event_type_id="suricata", weight=60),
            EnabledEventSource(event_type_id="windows_security", template_ids=["4624"], weight=5),
        ],
    )
    pool = build_weighted_pool(registry, config, ["a"])

    suricata = [p for p in pool if p.event_type_id == "suricata"]
    assert len(suricata) == len(registry.get("suricata").list_templates())
    assert {p.weight for p in suricata} == {60 // len(suricata)}

    windows = [p for p in pool if p.event_type_id == "windows_security"]
    assert [(p.template_id, p.weight) for p in windows] == [("4624", 5)]


def test_pool_default_weight_never_drops_below_one(registry):
    config = NoiseConfig(
        destination_id="a",
        rate_per_second=1,
        enabled_sources=[EnabledEventSource(event_type_id="suricata")],
    )
    pool = build_weighted_pool(registry, config, ["a"])
    assert all(p.weight == 1 for p in pool)


def test_pool_skips_what_cannot_be_sent(registry):
    config = NoiseConfig(
        destination_id=None,
        rate_per_second=1,
        enabled_sources=[
            EnabledEventSource(event_type_id="okta", destination_id="a"),
            EnabledEventSource(event_type_id="suricata", template_ids=["nope"], destination_id="a"),
            EnabledEventSource(event_type_id="suricata", enabled=False, destination_id="a"),
            EnabledEventSource(event_type_id="suricata", destination_id="missing"),
            EnabledEventSource(event_type_id="aws_guardduty"),
            EnabledEventSource(event_type_id="suricata", template_ids=["dns", "nope"], destination_id="a"),
        ],
    )
    pool = build_weighted_pool(registry, config, ["a"])
    assert [(p.event_type_id, p.template_id, p.destination_id) for p in pool] == [
        ("suricata", "dns", "a"),
    ]


def test_pool_per_source_destination_overrides_global(registry):
    config = NoiseConfig(
        destination_id="global",
        rate_per_second=1,
        enabled_sources=[
            EnabledEventSource(event_type_id="suricata", template_ids=["dns"]),
            EnabledEventSource(event_type_id="suricata", template_ids=["tls"], destination_id="own"),
        ],
    )
    pool = build_weighted_pool(registry, config, ["global", "own"])
    assert {(p.template_id, p.destination_id) for p in pool} == {("dns", "global"), ("tls", "own")}


# ---------- lifecycle ----------

def make_config(**kwargs):
    kwargs.setdefault("destination_id", "a")
    kwargs.setdefault("rate_per_second", 0.1)
    kwargs.setdefault("enabled_sources", [EnabledEventSource(event_type_id="suricata")])
    return NoiseConfig(**kwargs)


def test_failed_sender_creation_closes_earlier_senders(registry):
    factory = SenderFactory(fail_on="b")
    noise = NoiseGenerator(registry, sender_factory=factory)

    with pytest.raises(NoiseError, match="destination b"):
        noise.start(make_config(), destinations("a", "b"))

    assert len(factory.created) == 1
    assert factory.created[0].closed
    assert not noise.running


def test_start_without_valid_sources_closes_senders(registry):
    factory = SenderFactory()
    noise = NoiseGenerator(registry, sender_factory=factory)
    config = make_config(enabled_sources=[EnabledEventSource(event_type_id="okta")])

    with pytest.raises(NoiseError, match="no valid event sources"):
        noise.start(config, destinations("a"))

    assert all(sender.closed for sender in factory.created)
    assert not noise.running


def test_start_requires_an_enabled_source(registry):
    noise = NoiseGenerator(registry, sender_factory=SenderFactory())
    config = make_config(enabled_sources=[EnabledEventSource(event_type_id="suricata", enabled=False)])
    with pytest.raises(NoiseError):
        noise.start(config, destinations("a"))


def test_stop_when_idle_raises(registry):
    noise = NoiseGenerator(registry, sender_factory=SenderFactory())
    with pytest.raises(NoiseError, match="not running"):
        noise.stop()
    with pytest.raises(NoiseError, match="not running"):
        noise.update_config(NoiseUpdateRequest(rate_per_second=5))


def test_background_thread_sends_until_stopped(registry):
    factory = SenderFactory()
    noise = NoiseGenerator(registry, sender_factory=factory)
    noise.start(make_config(rate_per_second=500), destinations("a"))

    with pytest.raises(NoiseError, match="already running"):
        noise.start(make_config(), destinations("a"))

    assert wait_for(lambda: noise.stats()["total_sent"] >= 10)
    noise.stop()
    assert not noise.running
    assert not any(t.name == "noise-generator" and t.is_alive() for t in threading.enumerate())

    sender = factory.created[0]
    assert sender.closed
    stats = noise.stats()
    assert stats["total_sent"] == len(sender.events)
    assert sum(stats["by_event_type"].values()) == stats["total_generated"]
    assert all(key.startswith("suricata/") for key in stats["by_template"])
    assert stats["total_errors"] == 0


def test_step_routes_events_to_their_destination(registry):
    factory = SenderFactory()
    noise = NoiseGenerator(registry, sender_factory=factory, rng=random.Random(7))
    config = make_config(
        destination_id=None,
        enabled_sources=[
            EnabledEventSource(event_type_id="suricata", destination_id="a"),
            EnabledEventSource(event_type_id="windows_security", destination_id="b"),
        ],
    )
    noise.start(config, destinations("a", "b"))
    for _ in range(50):
        noise.step()
    noise.stop()

    by_type = {}
    for sender in factory.created:
        for event in sender.events:
            by_type.setdefault(event.type, set()).add(id(sender))
    assert all(len(senders) == 1 for senders in by_type.values())
    assert by_type["suricata"] != by_type["windows_security"]


def test_send_errors_are_counted_and_sampled(registry):
    factory = SenderFactory(failing_sends=True)
    noise = NoiseGenerator(registry, sender_factory=factory)
    noise.start(make_config(), destinations("a"))
    # the thread steps once on start, then sleeps for ten seconds
    assert wait_for(lambda: noise.stats()["total_generated"] >= 1)
    for _ in range(8):
        noise.step()
    status = noise.status()
    noise.stop()

    stats = status["stats"]
    assert stats["total_sent"] == 0
    assert stats["total_errors"] == 9
    assert stats["total_generated"] == stats["total_errors"]
    assert len(stats["error_samples"]) == 5
    assert all(sample.startswith("send error:") for sample in stats["error_samples"])


def test_update_config_changes_rate_and_sources(registry):
    factory = SenderFactory()
    noise = NoiseGenerator(registry, sender_factory=factory)
    noise.start(make_config(), destinations("a"))

    noise.update_config(NoiseUpdateRequest(rate_per_second=25))
    noise.update_config(NoiseUpdateRequest(
        enabled_sources=[EnabledEventSource(event_type_id="windows_security", template_ids=["4625"])]
    ))
    for _ in range(5):
        noise.step()
    status = noise.status()

    with pytest.raises(NoiseError, match="no valid event sources"):
        noise.update_config(NoiseUpdateRequest(enabled_sources=[EnabledEventSource(event_type_id="okta")]))
    noise.stop()

    assert status["current_config"]["rate_per_second"] == 25
    assert status["stats"]["by_template"].get("windows_security/4625", 0) >= 5


# ---------- API ----------

@pytest.fixture
def client(tmp_path):
    settings = Settings(
        config_dir=str(tmp_path),
        default_output_file=str(tmp_path / "events.log"),
    )
    app = create_app(settings)
    yield TestClient(app)
    if app.state.noise.running:
        app.state.noise.stop()


def test_noise_api_start_status_stop(client, tmp_path):
    response = client.post("/api/noise/start", json={
        "destination_id": "default-file",
        "rate_per_second": 200,
        "enabled_sources": [{"event_type_id": "suricata", "template_ids": ["dns"]}],
    })
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"]["running"] is True

    assert wait_for(lambda: client.get("/api/noise/stats").json()["total_sent"] >= 5)

    status = client.get("/api/noise/status").json()
    assert status["current_config"]["destination_id"] == "default-file"

    update = client.put("/api/noise/config", json={"rate_per_second": 50})
    assert update.status_code == 200
    assert update.json()["status"]["current_config"]["rate_per_second"] == 50

    stopped = client.post("/api/noise/stop").json()
    assert stopped["status"]["running"] is False
    sent = stopped["status"]["stats"]["total_sent"]

    with open(tmp_path / "events.log", encoding="utf-8") as f:
        assert sum(1 for _ in f) == sent

    assert client.post("/api/noise/stop").status_code == 400


def test_noise_api_rejects_bad_requests(client):
    sources = [{"event_type_id": "suricata"}]

    no_destination = client.post("/api/noise/start", json={"rate_per_second": 1, "enabled_sources": sources})
    assert no_destination.status_code == 400

    unknown = client.post("/api/noise/start", json={
        "destination_id": "nope", "rate_per_second": 1, "enabled_sources": sources,
    })
    assert unknown.status_code == 404
    assert "nope" in unknown.json()["detail"]

    disabled = client.post("/api/noise/start", json={
        "destination_id": "default-file",
        "rate_per_second": 1,
        "enabled_sources": [{"event_type_id": "suricata", "enabled": False}],
    })
    assert disabled.status_code == 400

    too_fast = client.post("/api/noise/start", json={
        "destination_id": "default-file", "rate_per_second": 20000, "enabled_sources": sources,
    })
    assert too_fast.status_code == 422

    invalid = client.post("/api/noise/start", json={
        "destination_id": "default-file",
        "rate_per_second": 1,
        "enabled_sources": [{"event_type_id": "okta"}],
    })
    assert invalid.status_code == 400

    assert client.put("/api/noise/config", json={"rate_per_second": 2}).status_code == 400
    assert client.get("/api/noise/status").json()["running"] is False
