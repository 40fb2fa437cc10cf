"""Message sinks for published documents."""

from sql_publisher.sinks.base import MessageSink, SinkRegistry, registry
from sql_publisher.sinks.file import JsonLinesFileSink
from sql_publisher.sinks.stdout import StdoutSink

__all__ = [
    "JsonLinesFileSink",
    "MessageSink",
    "SinkRegistry",
    "StdoutSink",
    "registry",
]
