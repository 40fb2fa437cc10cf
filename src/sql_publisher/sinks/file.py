"""Sink appending documents to a JSON Lines file."""

from __future__ import annotations

from pathlib import Path
from typing import IO, TYPE_CHECKING

from sql_publisher.core.exceptions import ConfigurationError
from sql_publisher.sinks.base import registry

if TYPE_CHECKING:
    from sql_publisher.core.config import PublisherSettings


@registry.register("file")
class JsonLinesFileSink:
    """Appends one document per line. The file is opened on first send."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._handle: IO[str] | None = None

    @classmethod
    def from_settings(cls, settings: PublisherSettings) -> JsonLinesFileSink:
        if not settings.output_path:
            msg = "The file sink needs an output path (--output)"
            raise ConfigurationError(msg)
        return cls(settings.output_path)

    def send(self, document: str) -> None:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = open(self.path, "a", encoding="utf-8")  # noqa: SIM115
        self._handle.write(document + "\n")
        self._handle.flush()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
