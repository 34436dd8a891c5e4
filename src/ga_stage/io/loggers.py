"""Record-oriented statistics sinks for CSV and Excel files."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

from ga_stage.exceptions import LoggerError

_LOG = logging.getLogger(__name__)


class AbstractLogger(ABC):
    """Collects one record at a time over a fixed schema of field names.

    ``put`` fills fields of the current record, ``log`` commits it and
    starts a fresh one, ``save`` writes committed records to the backing
    file. After ``close`` every call raises LoggerError.
    """

    def __init__(self, schema: list[str]) -> None:
        if not schema:
            raise LoggerError("logger schema must not be empty")
        if len(set(schema)) != len(schema):
            raise LoggerError("logger schema has duplicate fields", {"schema": schema})
        self.schema = list(schema)
        self._record: dict[str, Any] = {}
        self._pending: list[dict[str, Any]] = []
        self.closed = False

    def put(self, key: str, value: Any) -> None:
        self._check_open()
        if key not in self.schema:
            raise LoggerError(f"unknown field '{key}'", {"schema": self.schema})
        self._record[key] = value

    def get(self, key: str) -> Any:
        if key not in self.schema:
            raise LoggerError(f"unknown field '{key}'", {"schema": self.schema})
        return self._record.get(key)

    def is_record_complete(self) -> bool:
        return all(key in self._record for key in self.schema)

    def log(self) -> None:
        """Commit the current record; fields never put are left empty."""
        self._check_open()
        self._pending.append({key: self._record.get(key) for key in self.schema})
        self._record = {}

    def save(self) -> None:
        self._check_open()
        if self._pending:
            self._write(self._pending)
            _LOG.debug(f"{type(self).__name__} wrote {len(self._pending)} records")
            self._pending = []

    def close(self) -> None:
        if self.closed:
            return
        self.save()
        self.closed = True

    @property
    def pending(self) -> int:
        return len(self._pending)

    @abstractmethod
    def _write(self, rows: list[dict[str, Any]]) -> None: ...

    def _check_open(self) -> None:
        if self.closed:
            raise LoggerError(f"{type(self).__name__} is closed")

    def __enter__(self) -> AbstractLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CSVLogger(AbstractLogger):
    """Appends records to a delimited text file.

    The file is truncated on the first save; the header is written once.
    """

    def __init__(
        self,
        schema: list[str],
        filepath: str | Path,
        separator: str = ",",
        header: bool = True,
    ) -> None:
        super().__init__(schema)
        self.filepath = Path(filepath)
        self.separator = separator
        self.header = header
        self._started = False

    def _write(self, rows: list[dict[str, Any]]) -> None:
        df = pd.DataFrame(rows, columns=self.schema)
        df.to_csv(
            self.filepath,
            sep=self.separator,
            mode="a" if self._started else "w",
            header=self.header and not self._started,
            index=False,
        )
        self._started = True


class XLSXLogger(AbstractLogger):
    """Keeps records on an openpyxl worksheet and saves the whole workbook."""

    def __init__(
        self,
        schema: list[str],
        filepath: str | Path,
        sheet_name: str = "Statistics",
    ) -> None:
        super().__init__(schema)
        self.filepath = Path(filepath)
        self.workbook = Workbook()
        self.sheet = self.workbook.active
        self.sheet.title = sheet_name

        header_font = Font(bold=True, name="Arial")
        center = Alignment(horizontal="center", vertical="center")
        for col_idx, label in enumerate(self.schema, 1):
            cell = self.sheet.cell(row=1, column=col_idx, value=label)
            cell.font = header_font
            cell.alignment = center

    def _write(self, rows: list[dict[str, Any]]) -> None:
        for row in rows:
            self.sheet.append([_cell_value(row[key]) for key in self.schema])
        self.workbook.save(str(self.filepath))


def _cell_value(value: Any) -> Any:
    # openpyxl rejects numpy scalars
    if hasattr(value, "item"):
        return value.item()
    return value
