"""Batching cursor: rows in, bounded JSON array documents out."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from sql_publisher.core.convert import convert_row

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sql_publisher.core.schema import Schema


@dataclass
class BatchStats:
    """Counters for one stream, updated as documents are produced."""

    rows: int = 0
    batches: int = 0
    completed: bool = False
    started_at: float = field(default_factory=time.monotonic)
    elapsed_seconds: float = 0.0


def serialize_batch(batch: list[dict[str, Any]]) -> str:
    return json.dumps(batch, separators=(",", ":"), ensure_ascii=False)


def stream_batches(
    rows: Iterable[tuple[Any, ...]],
    schema: Schema,
    max_batch_size: int | None = None,
    stats: BatchStats | None = None,
) -> Iterator[str]:
    """Convert rows and yield them as serialized JSON arrays.

    A batch is emitted every time it holds max_batch_size documents; the
    remainder is emitted once the rows are exhausted. max_batch_size of
    0 or None means a single terminal batch. Zero rows yield nothing.

    ConversionError aborts the stream; the batch being built is dropped.
    Closing the generator early closes the row iterator as well.
    """
    if max_batch_size is not None and max_batch_size < 0:
        msg = f"max_batch_size must be >= 0, got {max_batch_size}"
        raise ValueError(msg)
    return _stream(rows, schema, max_batch_size or 0, stats or BatchStats())


def _stream(
    rows: Iterable[tuple[Any, ...]],
    schema: Schema,
    limit: int,
    stats: BatchStats,
) -> Iterator[str]:
    log = structlog.get_logger()
    row_iter = iter(rows)
    batch: list[dict[str, Any]] = []
    try:
        for row in row_iter:
            batch.append(convert_row(row, schema, stats.rows + 1))
            stats.rows += 1

            if limit and len(batch) == limit:
                stats.batches += 1
                document = serialize_batch(batch)
                batch = []
                yield document

        if batch:
            stats.batches += 1
            yield serialize_batch(batch)

        stats.completed = True
    finally:
        stats.elapsed_seconds = time.monotonic() - stats.started_at
        close = getattr(row_iter, "close", None)
        if close is not None:
            close()

    log.info(
        "stream complete",
        rows=stats.rows,
        batches=stats.batches,
        duration_ms=f"{stats.elapsed_seconds * 1000:.1f}",
    )
