"""Result metadata models for SQL Publisher.

Pydantic models describing the columns reported by a data source when a
query is executed in metadata-only mode.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ColumnMeta(BaseModel):
    """Metadata for a single result column."""

    model_config = ConfigDict(frozen=True)

    name: str
    type_oid: int
    type_name: str
