"""
Delivery Module
Senders that ship generated events to files, syslog servers and HEC endpoints.
"""
from delivery.config import (
    Destination,
    DestinationConfig,
    DestinationRequest,
    DestinationType,
    ConnectionTestRequest,
)
from delivery.base import Sender, get_sender, test_destination
from delivery.file import FileSender
from delivery.syslog import SyslogSender
from delivery.hec import HECSender
from delivery.store import DestinationStore

__all__ = [
    'Destination',
    'DestinationConfig',
    'DestinationRequest',
    'DestinationType',
    'ConnectionTestRequest',
    'Sender',
    'get_sender',
    'test_destination',
    'FileSender',
    'SyslogSender',
    'HECSender',
    'DestinationStore',
]
