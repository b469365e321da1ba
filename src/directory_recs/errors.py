from __future__ import annotations

from typing import Any, Optional


class MalformedRowError(ValueError):
    """A row returned by the data source does not have the expected shape."""

    def __init__(self, table: str, reason: str, row_id: Optional[Any] = None):
        self.table = table
        self.row_id = row_id
        where = f"{table} row {row_id!r}" if row_id is not None else f"{table} row"
        super().__init__(f"Malformed {where}: {reason}")
