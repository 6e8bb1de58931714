"""Document contents: streams, events and the quantities derived from them."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import operator
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import uuid

import numpy as np
from numpy.typing import NDArray

from tracecore.electrode import Electrode, Prefix
from tracecore.errors import InvalidDocument

SampleArray = NDArray[np.float64]


def time_at(index: int | np.ndarray, sample_rate: float) -> float | np.ndarray:
    """Convert a sample index (or array of indices) to seconds from start.

    Every index-to-time conversion in the package goes through this formula.
    """
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    step = 1.0 / float(sample_rate)
    if isinstance(index, np.ndarray):
        return index.astype(np.float64) * step
    return float(index) * step


def _as_samples(values: Iterable[float] | np.ndarray) -> SampleArray:
    arr = np.array(values, dtype=np.float64, copy=True)
    if arr.ndim != 1:
        raise InvalidDocument("stream samples must be one-dimensional")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Stream:
    """One electrode's ordered sequence of potential readings."""

    electrode: Electrode
    samples: SampleArray
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "samples", _as_samples(self.samples))

    @property
    def sample_count(self) -> int:
        return int(self.samples.size)

    def sample_points(self, sample_rate: float, window: Optional[range] = None):
        from tracecore.sample_query import sample_points

        return sample_points([self], sample_rate, window)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stream):
            return NotImplemented
        return (
            self.id == other.id
            and self.electrode == other.electrode
            and self.samples.shape == other.samples.shape
            and bool(np.array_equal(self.samples.view(np.int64), other.samples.view(np.int64)))
        )

    def __repr__(self) -> str:
        return f"Stream({self.electrode.symbol}, n={self.sample_count}, id={self.id})"


@dataclass(frozen=True, order=True)
class Event:
    type: str
    sample_index: int


def _as_index(value, what: str) -> int:
    try:
        return operator.index(value)
    except TypeError:
        raise InvalidDocument(f"{what} must be an integer, got {value!r}") from None


def _normalise_events(events: Optional[Mapping[str, Iterable[int]]]) -> Dict[str, Tuple[int, ...]]:
    if not events:
        return {}
    out: Dict[str, Tuple[int, ...]] = {}
    for event_type in sorted(events):
        indices = sorted({_as_index(idx, f"event {event_type!r} index") for idx in events[event_type]})
        out[str(event_type)] = tuple(indices)
    return out


@dataclass(frozen=True, eq=True)
class DocumentContents:
    """The full in-memory aggregate of one recording.

    Instances are immutable. Derived quantities are computed from the owned
    collections on every access and never cached. Construction validates the
    cross-stream invariants and raises :class:`InvalidDocument` on violation.
    """

    streams: Tuple[Stream, ...]
    sample_rate: float
    subject: Optional[str] = None
    info: Optional[str] = None
    events: Dict[str, Tuple[int, ...]] = field(default_factory=dict)
    epoch_length: Optional[int] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    # events is a dict and stream samples are arrays
    __hash__ = None

    def __post_init__(self) -> None:
        streams = tuple(self.streams)
        object.__setattr__(self, "streams", streams)
        object.__setattr__(self, "events", _normalise_events(self.events))

        rate = float(self.sample_rate)
        if not np.isfinite(rate) or rate <= 0:
            raise InvalidDocument("sample_rate must be a positive finite number")
        object.__setattr__(self, "sample_rate", rate)

        lengths = {stream.sample_count for stream in streams}
        if len(lengths) > 1:
            raise InvalidDocument(f"streams have differing sample counts: {sorted(lengths)}")
        ids = [stream.id for stream in streams]
        if len(set(ids)) != len(ids):
            raise InvalidDocument("stream ids must be unique")

        if self.epoch_length is not None:
            epoch_length = _as_index(self.epoch_length, "epoch_length")
            if epoch_length < 0:
                raise InvalidDocument("epoch_length must not be negative")
            object.__setattr__(self, "epoch_length", epoch_length)

        count = self.sample_count or 0
        for event_type, indices in self.events.items():
            if indices and (indices[0] < 0 or indices[-1] >= count):
                raise InvalidDocument(
                    f"event {event_type!r} has sample indices outside [0, {count})"
                )

    # ----- derived quantities -----

    @property
    def sample_count(self) -> Optional[int]:
        if not self.streams:
            return None
        return self.streams[0].sample_count

    @property
    def duration(self) -> Optional[float]:
        count = self.sample_count
        if count is None:
            return None
        return count * (1.0 / self.sample_rate)

    def time(self, at: int) -> float:
        return time_at(at, self.sample_rate)

    @property
    def potential_range(self) -> Optional[Tuple[float, float]]:
        non_empty = [stream.samples for stream in self.streams if stream.sample_count]
        if not non_empty:
            return None
        lo = min(float(arr.min()) for arr in non_empty)
        hi = max(float(arr.max()) for arr in non_empty)
        return lo, hi

    @property
    def prefixes(self) -> List[Prefix]:
        return sorted({stream.electrode.prefix for stream in self.streams})

    @property
    def event_types(self) -> List[str]:
        return list(self.events)

    # ----- lookups -----

    def events_list(self, types: Optional[Iterable[str]] = None) -> List[Event]:
        wanted = None if types is None else set(types)
        return [
            Event(event_type, idx)
            for event_type, indices in self.events.items()
            if wanted is None or event_type in wanted
            for idx in indices
        ]

    def stream(self, stream_id: uuid.UUID) -> Stream:
        for candidate in self.streams:
            if candidate.id == stream_id:
                return candidate
        raise KeyError(stream_id)

    def sorted_streams(self) -> List[Stream]:
        return sorted(self.streams, key=lambda stream: stream.electrode)

    def streams_for_prefix(self, prefix: Prefix) -> List[Stream]:
        return [s for s in self.sorted_streams() if s.electrode.prefix == prefix]

    # ----- value updates -----

    def with_streams(self, streams: Sequence[Stream]) -> "DocumentContents":
        return replace(self, streams=tuple(streams))

    def with_events(self, events: Mapping[str, Iterable[int]]) -> "DocumentContents":
        return replace(self, events=dict(events))


__all__ = ["DocumentContents", "Event", "Stream", "time_at"]
