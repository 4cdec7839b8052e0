import json
import threading
import uuid
from datetime import datetime, timezone

import httpx
import pytest

from event_generator.errors import ConfigurationError, TransportError
from event_generator.models import GeneratedEvent
from delivery.config import DestinationConfig
from delivery.hec import HECSender

URL = "https://hec.example.test:8088/services/collector"


def make_event(raw, sourcetype="suricata"):
    return GeneratedEvent(
        id=str(uuid.uuid4()),
        type="suricata",
        event_id="alert",
        timestamp=datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc),
        raw_event=raw,
        fields={},
        sourcetype=sourcetype,
    )


class Recorder:
    def __init__(self, status_code=200, body=None):
        self.requests = []
        self.status_code = status_code
        self.body = body if body is not None else {"text": "Success", "code": 0}

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    def envelopes(self, index=0):
        body = self.requests[index].content.decode("utf-8")
        return [json.loads(line) for line in body.splitlines()]


def make_sender(recorder, **config):
    config.setdefault("url", URL)
    config.setdefault("token", "abc-123")
    return HECSender(DestinationConfig(**config), transport=httpx.MockTransport(recorder))


def test_batch_is_flushed_when_full():
    recorder = Recorder()
    sender = make_sender(recorder, batch_size=3)

    sender.send(make_event("one"))
    sender.send(make_event("two"))
    assert recorder.requests == []

    sender.send(make_event("three"))
    assert len(recorder.requests) == 1
    assert [e["event"] for e in recorder.envelopes()] == ["one", "two", "three"]

    sender.close()
    assert len(recorder.requests) == 1


def test_request_headers_and_envelope():
    recorder = Recorder()
    sender = make_sender(recorder, batch_size=0, index="main", source="generator")
    sender.send(make_event("payload"))
    sender.close()

    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["Authorization"] == "Splunk abc-123"
    assert request.headers["Content-Type"] == "application/json"
    assert request.content.endswith(b"\n")

    envelope = recorder.envelopes()[0]
    assert envelope == {
        "time": 1704164645.5,
        "host": "siem-event-generator",
        "source": "generator",
        "sourcetype": "suricata",
        "index": "main",
        "event": "payload",
    }


def test_destination_sourcetype_overrides_event():
    recorder = Recorder()
    sender = make_sender(recorder, batch_size=0, sourcetype="custom:st")
    sender.send(make_event("payload"))
    sender.close()

    envelope = recorder.envelopes()[0]
    assert envelope["sourcetype"] == "custom:st"
    assert "index" not in envelope
    assert "source" not in envelope


def test_zero_batch_size_posts_every_event():
    recorder = Recorder()
    sender = make_sender(recorder, batch_size=0)
    for i in range(4):
        sender.send(make_event(str(i)))
    sender.close()
    assert len(recorder.requests) == 4


def test_default_batch_size_is_one_hundred():
    recorder = Recorder()
    sender = make_sender(recorder)
    for i in range(99):
        sender.send(make_event(str(i)))
    assert recorder.requests == []
    sender.send(make_event("99"))
    assert len(recorder.requests) == 1
    assert len(recorder.envelopes()) == 100
    sender.close()


def test_close_flushes_partial_batch_once():
    recorder = Recorder()
    sender = make_sender(recorder, batch_size=10)
    for i in range(4):
        sender.send(make_event(str(i)))
    assert recorder.requests == []

    sender.close()
    assert len(recorder.requests) == 1
    assert [e["event"] for e in recorder.envelopes()] == ["0", "1", "2", "3"]


def test_close_without_events_sends_nothing():
    recorder = Recorder()
    make_sender(recorder).close()
    assert recorder.requests == []


def test_failed_flush_reports_diagnostic_and_keeps_buffer():
    recorder = Recorder(status_code=400, body={"text": "Invalid data format", "code": 6})
    sender = make_sender(recorder, batch_size=2)
    sender.send(make_event("a"))

    with pytest.raises(TransportError) as excinfo:
        sender.send(make_event("b"))
    assert excinfo.value.status_code == 400
    assert "Invalid data format" in str(excinfo.value)
    assert len(sender.buffer) == 2

    recorder.status_code = 200
    sender.close()
    assert [e["event"] for e in recorder.envelopes(1)] == ["a", "b"]


def test_close_surfaces_flush_error():
    recorder = Recorder(status_code=503, body={"text": "Server is busy", "code": 9})
    sender = make_sender(recorder, batch_size=10)
    sender.send(make_event("pending"))

    with pytest.raises(TransportError, match="Server is busy"):
        sender.close()


def test_connection_check_distinguishes_forbidden():
    recorder = Recorder(status_code=403, body={"text": "Invalid token", "code": 4})
    sender = make_sender(recorder)
    with pytest.raises(TransportError, match="authentication failed"):
        sender.test()
    assert sender.buffer == []


def test_connection_check_bypasses_buffer():
    recorder = Recorder()
    sender = make_sender(recorder, batch_size=10)
    sender.send(make_event("buffered"))
    sender.test()

    assert len(recorder.requests) == 1
    assert recorder.envelopes()[0]["event"] == "Connection test event"
    assert len(sender.buffer) == 1
    sender.close()


def test_network_failure_is_transport_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    sender = HECSender(
        DestinationConfig(url=URL, token="t", batch_size=0),
        transport=httpx.MockTransport(refuse),
    )
    with pytest.raises(TransportError):
        sender.send(make_event("x"))


@pytest.mark.parametrize("config", [{"token": "t"}, {"url": URL}])
def test_url_and_token_are_required(config):
    with pytest.raises(ConfigurationError):
        HECSender(DestinationConfig(**config))


def test_concurrent_sends_batch_every_event_exactly_once():
    recorder = Recorder()
    lock = threading.Lock()

    def handler(request):
        with lock:
            return recorder(request)

    batch_size = 7
    sender = HECSender(
        DestinationConfig(url=URL, token="t", batch_size=batch_size),
        transport=httpx.MockTransport(handler),
    )

    def worker(prefix):
        for i in range(40):
            sender.send(make_event(f"{prefix}-{i}"))

    threads = [threading.Thread(target=worker, args=(f"w{n}",)) for n in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    sender.close()

    batches = [recorder.envelopes(i) for i in range(len(recorder.requests))]
    events = [e["event"] for batch in batches for e in batch]
    expected = {f"w{n}-{i}" for n in range(6) for i in range(40)}

    assert len(events) == len(expected)
    assert set(events) == expected
    assert all(len(batch) == batch_size for batch in batches[:-1])
    assert 0 < len(batches[-1]) <= batch_size
