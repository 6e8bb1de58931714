"""Exception types raised at the import and decode boundaries."""
from __future__ import annotations


class TraceError(Exception):
    """Base class for tracecore errors."""


class UnrecognizedElectrode(TraceError, ValueError):
    """An electrode symbol could not be resolved to a known sensing site."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"unrecognized electrode symbol: {symbol!r}")


class MalformedSample(TraceError, ValueError):
    """A numeric field of the tabular input could not be parsed.

    ``row`` counts data rows from zero (the header is not counted),
    ``column`` is the zero-based field index.
    """

    def __init__(self, row: int, column: int, text: str = ""):
        self.row = row
        self.column = column
        self.text = text
        super().__init__(f"malformed sample at row {row}, column {column}: {text!r}")


class RowColumnMismatch(TraceError, ValueError):
    """A data row does not have one field per header column."""

    def __init__(self, row: int, expected: int, found: int):
        self.row = row
        self.expected = expected
        self.found = found
        super().__init__(f"row {row} has {found} fields, expected {expected}")


class UnsupportedVersion(TraceError, ValueError):
    """The persisted document uses a format version this build cannot read."""

    def __init__(self, found: int | str):
        self.found = found
        super().__init__(f"unsupported format version: {found}")


class CorruptedData(TraceError, ValueError):
    """The persisted document is truncated or fails validation."""


class InvalidDocument(TraceError, ValueError):
    """Document contents violate a structural invariant."""
