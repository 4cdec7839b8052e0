"""
Syslog Sender
Ships events as RFC 3164 or RFC 5424 messages over TCP or UDP.
"""
import logging
import socket

from event_generator.errors import ConfigurationError, TransportError
from event_generator.models import GeneratedEvent
from delivery.base import DEFAULT_HOSTNAME, Sender
from delivery.config import DestinationConfig

logger = logging.getLogger(__name__)

APP_NAME = "siem-event-generator"
CONNECT_TIMEOUT = 10
TEST_WRITE_TIMEOUT = 5
TEST_MESSAGE = "<14>Jan  1 00:00:00 test siem-event-generator: connection test"


def format_rfc3164(priority: int, event: GeneratedEvent, hostname: str, tag: str = APP_NAME) -> str:
    ts = event.timestamp
    return f"<{priority}>{ts:%b} {ts.day:2d} {ts:%H:%M:%S} {hostname} {tag}: {event.raw_event}"


def format_rfc5424(priority: int, event: GeneratedEvent, hostname: str, tag: str = APP_NAME) -> str:
    ts = event.timestamp.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    # no procid, msgid or structured data
    return f"<{priority}>1 {ts} {hostname} {tag} - - - {event.raw_event}"


class SyslogSender(Sender):
    """
    Syslog over a connected socket.

    The socket is opened once in the constructor; there is no reconnect, a
    broken connection means building a new sender.
    """

    name = "syslog"

    def __init__(self, config: DestinationConfig, protocol: str = "udp",
                 hostname: str = DEFAULT_HOSTNAME):
        super().__init__(config)
        if protocol not in ("tcp", "udp"):
            raise ConfigurationError(f"unsupported syslog protocol: {protocol}")
        if not config.host:
            raise ConfigurationError("syslog host is required")
        if not config.port:
            raise ConfigurationError("syslog port is required")

        self.protocol = protocol
        self.hostname = hostname
        self.priority = config.syslog_facility() * 8 + config.syslog_severity()
        self.format = config.syslog_format()
        self._sock = self._connect(config.host, config.port)
        logger.debug("Syslog sender connected to %s:%d over %s", config.host, config.port, protocol)

    def _connect(self, host: str, port: int) -> socket.socket:
        try:
            if self.protocol == "tcp":
                return socket.create_connection((host, port), timeout=CONNECT_TIMEOUT)

            family, socktype, proto, _, address = socket.getaddrinfo(
                host, port, type=socket.SOCK_DGRAM
            )[0]
            sock = socket.socket(family, socktype, proto)
            sock.settimeout(CONNECT_TIMEOUT)
            try:
                sock.connect(address)
            except OSError:
                sock.close()
                raise
            return sock
        except OSError as e:
            raise TransportError(f"failed to connect to syslog server {host}:{port}: {e}") from e

    def format_message(self, event: GeneratedEvent) -> str:
        if self.format == "rfc5424":
            return format_rfc5424(self.priority, event, self.hostname)
        return format_rfc3164(self.priority, event, self.hostname)

    def _frame(self, message: str) -> bytes:
        if self.protocol == "tcp":
            message += "\n"
        return message.encode("utf-8")

    def send(self, event: GeneratedEvent) -> None:
        payload = self._frame(self.format_message(event))
        with self._lock:
            try:
                self._sock.send(payload)
            except OSError as e:
                raise TransportError(f"failed to send syslog message: {e}") from e

    def test(self) -> None:
        payload = self._frame(TEST_MESSAGE)
        with self._lock:
            previous = self._sock.gettimeout()
            try:
                self._sock.settimeout(TEST_WRITE_TIMEOUT)
                self._sock.send(payload)
            except OSError as e:
                raise TransportError(f"syslog connection test failed: {e}") from e
            finally:
                self._sock.settimeout(previous)

    def close(self) -> None:
        with self._lock:
            try:
                self._sock.close()
            except OSError as e:
                raise TransportError(f"failed to close syslog socket: {e}") from e
        logger.info("Closed syslog sender (%s)", self.protocol)
