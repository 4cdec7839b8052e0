"""
File Sender
Appends raw events to a local file with size-triggered rotation.
"""
import logging
import os

from event_generator.errors import ConfigurationError, TransportError
from event_generator.models import GeneratedEvent
from delivery.base import Sender
from delivery.config import DestinationConfig

logger = logging.getLogger(__name__)


class FileSender(Sender):
    """
    Writes one event per line to `file_path`.

    When the active file reaches max_size_mb it is renamed to `<path>.1`,
    older siblings shift up by one and `<path>.<keep>` is dropped.
    """

    name = "file"

    def __init__(self, config: DestinationConfig):
        super().__init__(config)
        if not config.file_path:
            raise ConfigurationError("file path is required")

        self.path = config.file_path
        self.max_bytes = config.rotation_bytes()
        self.keep = config.rotation_keep()

        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"failed to create directory {directory}: {e}") from e

        self._file = None
        self._open()
        logger.debug("File sender writing to %s (rotate at %d bytes, keep %d)",
                     self.path, self.max_bytes, self.keep)

    def _open(self, error=ConfigurationError) -> None:
        # construction reports a bad destination, later reopens a runtime failure
        try:
            self._file = open(self.path, "a", encoding="utf-8")
        except OSError as e:
            raise error(f"failed to open file {self.path}: {e}") from e

    def _rotate_if_needed(self) -> None:
        if self.max_bytes <= 0:
            return
        if os.fstat(self._file.fileno()).st_size < self.max_bytes:
            return

        self._file.close()
        self._file = None
        self._rotate_files()
        self._open(TransportError)
        logger.debug("Rotated %s", self.path)

    def _rotate_files(self) -> None:
        oldest = f"{self.path}.{self.keep}"
        if os.path.exists(oldest):
            os.remove(oldest)

        for i in range(self.keep - 1, 0, -1):
            src = f"{self.path}.{i}"
            if os.path.exists(src):
                os.replace(src, f"{self.path}.{i + 1}")

        if os.path.exists(self.path):
            os.replace(self.path, f"{self.path}.1")

    def send(self, event: GeneratedEvent) -> None:
        with self._lock:
            try:
                if self._file is None:
                    self._open(TransportError)
                self._rotate_if_needed()
                self._file.write(event.raw_event + "\n")
                self._file.flush()
            except OSError as e:
                raise TransportError(f"failed to write event to {self.path}: {e}") from e

    def test(self) -> None:
        with self._lock:
            try:
                if self._file is None:
                    self._open(TransportError)
                self._file.write("# Connection test\n")
                self._file.flush()
                os.fsync(self._file.fileno())
            except OSError as e:
                raise TransportError(f"failed to write to file {self.path}: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._file is None:
                return
            try:
                self._file.close()
            except OSError as e:
                raise TransportError(f"failed to close file {self.path}: {e}") from e
            finally:
                self._file = None
        logger.info("Closed file sender for %s", self.path)
