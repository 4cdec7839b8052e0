"""
Delivery Contract
Base class for destination senders and the factory that builds them.
"""
import logging
import threading
import time
from typing import Any, Dict

from event_generator.errors import ConfigurationError, DeliveryError
from event_generator.models import GeneratedEvent
from delivery.config import DestinationConfig, DestinationType

logger = logging.getLogger(__name__)

DEFAULT_HOSTNAME = "siem-event-generator"


class Sender:
    """
    Base class for senders.

    A sender exclusively owns its file handle, socket or HTTP client and
    releases it in close(). All state changes happen under self._lock, so a
    single instance may be shared by concurrent callers.
    """

    name: str = "base"

    def __init__(self, config: DestinationConfig):
        self.config = config
        self._lock = threading.Lock()

    def send(self, event: GeneratedEvent) -> None:
        raise NotImplementedError

    def test(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def get_sender(destination_type, config: DestinationConfig,
               hostname: str = DEFAULT_HOSTNAME) -> Sender:
    """
    Build the sender matching `destination_type`.

    Raises ConfigurationError for an unknown type or missing fields and
    TransportError when a syslog connection cannot be established.
    """
    from delivery.file import FileSender
    from delivery.hec import HECSender
    from delivery.syslog import SyslogSender

    try:
        destination_type = DestinationType(destination_type)
    except ValueError:
        raise ConfigurationError(f"unknown destination type: {destination_type}") from None

    if destination_type == DestinationType.SYSLOG_UDP:
        return SyslogSender(config, "udp", hostname=hostname)
    if destination_type == DestinationType.SYSLOG_TCP:
        return SyslogSender(config, "tcp", hostname=hostname)
    if destination_type == DestinationType.HEC:
        return HECSender(config, hostname=hostname)
    return FileSender(config)


def test_destination(destination_type, config: DestinationConfig,
                     hostname: str = DEFAULT_HOSTNAME) -> Dict[str, Any]:
    """
    Build a sender, run its connectivity check and close it again.

    Never raises for delivery failures; the outcome is reported in the
    returned dict instead.
    """
    start = time.perf_counter()
    try:
        sender = get_sender(destination_type, config, hostname)
    except DeliveryError as e:
        return {
            "success": False,
            "message": "Failed to create sender",
            "latency_ms": 0,
            "error": str(e),
        }

    try:
        sender.test()
    except DeliveryError as e:
        return {
            "success": False,
            "message": "Connection test failed",
            "latency_ms": int((time.perf_counter() - start) * 1000),
            "error": str(e),
        }
    finally:
        try:
            sender.close()
        except DeliveryError as e:
            logger.warning("Closing %s sender after test failed: %s", sender.name, e)

    latency_ms = int((time.perf_counter() - start) * 1000)
    return {
        "success": True,
        "message": "Connection successful",
        "latency_ms": latency_ms,
        "error": None,
    }
