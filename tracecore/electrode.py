"""Electrode identities of the extended 10-20 placement system."""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
import re

from tracecore.errors import UnrecognizedElectrode

MIDLINE = 0


class Prefix(IntEnum):
    """Scalp regions, ordered front to back."""

    FP = 1
    AF = 2
    F = 3
    FT = 4
    FC = 5
    T = 6
    C = 7
    TP = 8
    CP = 9
    P = 10
    PO = 11
    O = 12
    A = 13

    @property
    def label(self) -> str:
        return _PREFIX_LABELS[self]


_PREFIX_LABELS = {
    Prefix.FP: "Fp",
    Prefix.AF: "AF",
    Prefix.F: "F",
    Prefix.FT: "FT",
    Prefix.FC: "FC",
    Prefix.T: "T",
    Prefix.C: "C",
    Prefix.TP: "TP",
    Prefix.CP: "CP",
    Prefix.P: "P",
    Prefix.PO: "PO",
    Prefix.O: "O",
    Prefix.A: "A",
}

_PREFIX_TABLE = {label.lower(): prefix for prefix, label in _PREFIX_LABELS.items()}

# Lazy prefix so a trailing "z" is always read as the midline marker.
_SYMBOL_PATTERN = re.compile(r"([a-z]+?)(z|[1-9][0-9]*)")

MAX_SUFFIX = 255


@dataclass(frozen=True, order=True)
class Electrode:
    """A sensing site: region prefix plus positional suffix (0 is midline)."""

    prefix: Prefix
    suffix: int

    def __post_init__(self) -> None:
        if not isinstance(self.prefix, Prefix):
            object.__setattr__(self, "prefix", Prefix(self.prefix))
        if not 0 <= int(self.suffix) <= MAX_SUFFIX:
            raise ValueError(f"suffix must be within 0..{MAX_SUFFIX}")
        object.__setattr__(self, "suffix", int(self.suffix))

    @property
    def symbol(self) -> str:
        tail = "z" if self.suffix == MIDLINE else str(self.suffix)
        return f"{self.prefix.label}{tail}"

    @property
    def hemisphere(self) -> str:
        if self.suffix == MIDLINE:
            return "midline"
        return "left" if self.suffix % 2 else "right"

    def __str__(self) -> str:
        return self.symbol


def resolve(symbol: str) -> Electrode:
    """Parse a free-text label such as ``" fp1 "`` into an :class:`Electrode`.

    Matching is exact after trimming and case folding; no fuzzy matching is
    attempted.
    """
    text = str(symbol).strip().lower()
    match = _SYMBOL_PATTERN.fullmatch(text)
    if match is None:
        raise UnrecognizedElectrode(symbol)
    prefix = _PREFIX_TABLE.get(match.group(1))
    if prefix is None:
        raise UnrecognizedElectrode(symbol)
    raw_suffix = match.group(2)
    suffix = MIDLINE if raw_suffix == "z" else int(raw_suffix)
    if suffix > MAX_SUFFIX:
        raise UnrecognizedElectrode(symbol)
    return Electrode(prefix, suffix)


__all__ = ["Electrode", "MIDLINE", "Prefix", "resolve"]
