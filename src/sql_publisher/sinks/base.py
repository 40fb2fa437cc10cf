"""Message sink protocol and the name -> sink lookup used by the CLI.

A sink receives one outbound message per document produced by the
query executor. Sink classes register themselves under the name used
in the ``sink`` setting and build themselves from the settings snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from sql_publisher.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from sql_publisher.core.config import PublisherSettings


@runtime_checkable
class MessageSink(Protocol):
    def send(self, document: str) -> None:
        """Deliver one JSON document as a single message."""
        ...

    def close(self) -> None: ...


class _ConfigurableSink(MessageSink, Protocol):
    @classmethod
    def from_settings(cls, settings: PublisherSettings) -> MessageSink: ...


SinkT = TypeVar("SinkT", bound=type[_ConfigurableSink])


class SinkRegistry:
    def __init__(self) -> None:
        self._factories: dict[str, Callable[[PublisherSettings], MessageSink]] = {}

    def register(self, name: str) -> Callable[[SinkT], SinkT]:
        """Class decorator: make a sink selectable as ``sink = "<name>"``."""

        def decorator(sink_class: SinkT) -> SinkT:
            self._factories[name] = sink_class.from_settings
            return sink_class

        return decorator

    def create(self, settings: PublisherSettings) -> MessageSink:
        """Build the sink named by settings.sink.

        Raises ConfigurationError for an unknown name, or when the sink
        rejects the settings.
        """
        factory = self._factories.get(settings.sink)
        if factory is None:
            msg = f"Unknown sink {settings.sink!r}. Available: {', '.join(self.available)}"
            raise ConfigurationError(msg)
        return factory(settings)

    @property
    def available(self) -> list[str]:
        return sorted(self._factories)


registry = SinkRegistry()
