"""Import electrode streams from comma-separated text.

The first non-empty line holds electrode symbols, every following non-empty
line holds one sample per column. Stray characters (units, quotes, spaces)
are dropped from numeric fields before parsing. The import is all or
nothing: any error raises and no partial stream list is produced.
"""
from __future__ import annotations

import logging
from pathlib import Path
import re
from typing import List

import numpy as np

from tracecore.document import Stream
from tracecore.electrode import Electrode, resolve
from tracecore.errors import MalformedSample, RowColumnMismatch

LOG = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def _parse_header(line: str) -> List[Electrode]:
    return [resolve(symbol) for symbol in line.split(",")]


def _parse_field(text: str, row: int, column: int) -> float:
    cleaned = _NON_NUMERIC.sub("", text)
    try:
        return float(cleaned)
    except ValueError:
        raise MalformedSample(row, column, text) from None


def import_streams(text: str) -> List[Stream]:
    """Build one :class:`Stream` per header column of ``text``.

    Raises :class:`~tracecore.errors.UnrecognizedElectrode`,
    :class:`~tracecore.errors.MalformedSample` or
    :class:`~tracecore.errors.RowColumnMismatch`.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    electrodes = _parse_header(lines[0])
    rows = lines[1:]
    n_columns = len(electrodes)
    data = np.empty((n_columns, len(rows)), dtype=np.float64)

    for row_idx, line in enumerate(rows):
        fields = line.split(",")
        if len(fields) != n_columns:
            raise RowColumnMismatch(row_idx, n_columns, len(fields))
        for col_idx, raw in enumerate(fields):
            data[col_idx, row_idx] = _parse_field(raw, row_idx, col_idx)

    LOG.debug("Imported %d streams of %d samples", n_columns, len(rows))
    return [Stream(electrode, data[col]) for col, electrode in enumerate(electrodes)]


def import_streams_file(path: str | Path, *, encoding: str = "utf-8") -> List[Stream]:
    path = Path(path)
    LOG.debug("Reading tabular streams from %s", path)
    return import_streams(path.read_text(encoding=encoding))


__all__ = ["import_streams", "import_streams_file"]
