"""Polling loop: run the query on a fixed cadence and publish the documents."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import sentry_sdk

from sql_publisher.core.exceptions import SqlPublisherError
from sql_publisher.core.executor import QueryExecutor
from sql_publisher.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from sql_publisher.core.config import PublisherSettings, SettingsStore
    from sql_publisher.sinks.base import MessageSink


@dataclass
class PollSummary:
    polls: int = 0
    failed_polls: int = 0
    documents: int = 0
    elapsed_seconds: int = 0


def build_executor(settings: PublisherSettings) -> QueryExecutor:
    return QueryExecutor(
        settings.connection_string, settings.sql_query, verbose=settings.verbose
    )


def poll_once(
    executor: QueryExecutor,
    sink: MessageSink,
    settings: PublisherSettings,
) -> int:
    """Run one execution and send every document. Returns documents sent.

    Errors propagate; documents sent before the error stay sent.
    """
    if settings.is_sql_query_json:
        document = executor.raw_scalar_result()
        if not document:
            return 0
        sink.send(document)
        return 1

    sent = 0
    for document in executor.document_stream(settings.max_batch_size):
        sink.send(document)
        sent += 1
    return sent


class Poller:
    """Drives one executor per settings snapshot, one tick at a time.

    Ticks never overlap: the next tick starts only after the previous
    one has finished, and a slow tick shortens the following sleep.
    """

    def __init__(
        self,
        store: SettingsStore,
        sink: MessageSink,
        executor_factory: Callable[[PublisherSettings], QueryExecutor] = build_executor,
    ) -> None:
        self.store = store
        self.sink = sink
        self.executor_factory = executor_factory
        self._executor: QueryExecutor | None = None
        self._executor_version = 0

    def _current_executor(self) -> QueryExecutor:
        if self._executor is not None and self._executor_version == self.store.version:
            return self._executor

        log = get_logger("poller")
        if self._executor is not None:
            log.info("settings changed, rebuilding executor")
            self._executor.close()
            self._executor = None

        self._executor = self.executor_factory(self.store.current)
        self._executor_version = self.store.version
        return self._executor

    def tick(self) -> int:
        """Reload settings and run one poll. Errors propagate."""
        self.store.reload()
        settings = self.store.current
        executor = self._current_executor()
        return poll_once(executor, self.sink, settings)

    def run(self, max_polls: int | None = None, duration: int = 0) -> PollSummary:
        """Poll until max_polls ticks ran, duration elapsed, or Ctrl-C.

        duration of 0 means no time limit.
        """
        log = get_logger("poller")
        summary = PollSummary()
        start = time.monotonic()

        try:
            while True:
                if max_polls is not None and summary.polls >= max_polls:
                    break
                elapsed = int(time.monotonic() - start)
                if duration > 0 and elapsed >= duration:
                    break

                cycle_start = time.monotonic()
                summary.polls += 1

                with sentry_sdk.start_span(
                    op="poll", description=f"Poll cycle {summary.polls}"
                ) as span:
                    try:
                        sent = self.tick()
                    except SqlPublisherError as e:
                        summary.failed_polls += 1
                        span.set_status("internal_error")
                        sentry_sdk.capture_exception(e)
                        if self.store.current.verbose:
                            log.error("poll failed", error=e.message, exc_info=True)
                        else:
                            log.error("poll failed", error=e.message)
                    else:
                        summary.documents += sent
                        log.info("poll complete", poll=summary.polls, documents=sent)

                    cycle_elapsed = time.monotonic() - cycle_start
                    span.set_data("cycle_duration_ms", cycle_elapsed * 1000)

                if max_polls is not None and summary.polls >= max_polls:
                    break

                sleep_time = max(0, self.store.current.polling_interval - cycle_elapsed)
                if sleep_time > 0:
                    log.debug("sleeping until next poll", sleep_seconds=f"{sleep_time:.1f}")
                    with sentry_sdk.start_span(
                        op="sleep", description=f"Poll interval wait {sleep_time:.0f}s"
                    ):
                        time.sleep(sleep_time)

        except KeyboardInterrupt:
            log.info("polling interrupted")
        finally:
            self.close()

        summary.elapsed_seconds = int(time.monotonic() - start)
        return summary

    def close(self) -> None:
        if self._executor is not None:
            self._executor.close()
            self._executor = None
