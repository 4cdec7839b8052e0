"""
HEC Sender
Batches events into newline-delimited JSON envelopes and posts them to an
HTTP Event Collector endpoint.
"""
import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from event_generator.errors import ConfigurationError, TransportError
from event_generator.models import GeneratedEvent
from delivery.base import DEFAULT_HOSTNAME, Sender
from delivery.config import DestinationConfig

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0


def build_envelope(event: GeneratedEvent, config: DestinationConfig,
                   hostname: str = DEFAULT_HOSTNAME) -> Dict[str, Any]:
    """Wrap one event in the HEC envelope; empty metadata keys are omitted"""
    envelope: Dict[str, Any] = {"time": event.timestamp.timestamp()}
    metadata = {
        "host": hostname,
        "source": config.source,
        "sourcetype": config.sourcetype or event.sourcetype,
        "index": config.index,
    }
    for key, value in metadata.items():
        if value:
            envelope[key] = value
    envelope["event"] = event.raw_event
    return envelope


def _diagnostic(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("text"):
        return str(body["text"])
    return response.text[:200]


class HECSender(Sender):
    """
    Buffered HEC client.

    Envelopes are held in memory until batch_size of them are pending, then
    sent as one request. A batch size of 0 posts every event on its own.
    A failed flush keeps the buffer so nothing is lost before close().
    """

    name = "hec"

    def __init__(self, config: DestinationConfig, hostname: str = DEFAULT_HOSTNAME,
                 transport: Optional[httpx.BaseTransport] = None):
        super().__init__(config)
        if not config.url:
            raise ConfigurationError("HEC URL is required")
        if not config.token:
            raise ConfigurationError("HEC token is required")

        self.url = config.url
        self.hostname = hostname
        self.batch_size = config.hec_batch_size()
        self.buffer: List[Dict[str, Any]] = []
        self.headers = {
            "Authorization": f"Splunk {config.token}",
            "Content-Type": "application/json",
        }
        self._client = httpx.Client(
            timeout=REQUEST_TIMEOUT,
            verify=config.verify_ssl,
            transport=transport,
        )
        logger.debug("HEC sender for %s (batch size %d)", self.url, self.batch_size)

    def _post(self, body: str) -> httpx.Response:
        try:
            return self._client.post(self.url, content=body.encode("utf-8"), headers=self.headers)
        except httpx.HTTPError as e:
            raise TransportError(f"failed to send request to HEC: {e}") from e

    def send(self, event: GeneratedEvent) -> None:
        envelope = build_envelope(event, self.config, self.hostname)
        with self._lock:
            self.buffer.append(envelope)
            if self.batch_size == 0 or len(self.buffer) >= self.batch_size:
                self._flush()

    def flush(self) -> None:
        with self._lock:
            self._flush()

    def _flush(self) -> None:
        if not self.buffer:
            return

        body = "".join(json.dumps(envelope) + "\n" for envelope in self.buffer)
        response = self._post(body)
        if not response.is_success:
            raise TransportError(
                f"HEC returned status {response.status_code}: {_diagnostic(response)}",
                status_code=response.status_code,
            )

        logger.debug("Flushed %d events to %s", len(self.buffer), self.url)
        self.buffer.clear()

    def test(self) -> None:
        envelope = {
            "time": time.time(),
            "host": self.hostname,
            "source": "test",
            "sourcetype": "_json",
            "event": "Connection test event",
        }
        response = self._post(json.dumps(envelope))
        if response.status_code == httpx.codes.FORBIDDEN:
            raise TransportError("authentication failed: invalid HEC token", status_code=403)
        if not response.is_success:
            raise TransportError(
                f"HEC returned status {response.status_code}: {_diagnostic(response)}",
                status_code=response.status_code,
            )

    def close(self) -> None:
        with self._lock:
            try:
                self._flush()
            finally:
                self._client.close()
        logger.info("Closed HEC sender for %s", self.url)
