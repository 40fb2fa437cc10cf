"""Sink writing each document to stdout, one per line."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from sql_publisher.sinks.base import registry

if TYPE_CHECKING:
    from sql_publisher.core.config import PublisherSettings


@registry.register("stdout")
class StdoutSink:
    @classmethod
    def from_settings(cls, settings: PublisherSettings) -> StdoutSink:
        return cls()

    def send(self, document: str) -> None:
        sys.stdout.write(document + "\n")
        sys.stdout.flush()

    def close(self) -> None:
        pass
