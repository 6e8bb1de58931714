"""Chart-ready sample points for a subset of streams and a sample window."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from tracecore.document import Stream, time_at
from tracecore.electrode import Electrode


class SamplePoint(NamedTuple):
    electrode: Electrode
    timestamp: float
    potential: float


@dataclass(frozen=True)
class StreamSlice:
    """Windowed view of one stream. ``potentials`` shares memory with the stream."""

    electrode: Electrode
    start: int
    timestamps: np.ndarray
    potentials: np.ndarray

    @property
    def size(self) -> int:
        return int(self.potentials.size)


def window_bounds(sample_count: int, window: Optional[range | Tuple[int, int]]) -> Tuple[int, int]:
    """Return the visited ``[start, stop)`` indices for ``window`` over ``sample_count`` samples.

    The upper bound is clamped to the data, a negative lower bound to zero.
    Windows past the end or inverted windows give an empty range.
    """
    if window is None:
        return 0, sample_count
    if isinstance(window, range):
        lower, upper = window.start, window.stop
    else:
        lower, upper = window
    start = max(0, int(lower))
    stop = min(sample_count, int(upper))
    if stop < start:
        stop = start
    return start, stop


def stream_slices(
    streams: Sequence[Stream],
    sample_rate: float,
    window: Optional[range | Tuple[int, int]] = None,
) -> List[StreamSlice]:
    """Vectorised form of :func:`sample_points`, one slice per stream in caller order."""
    out: List[StreamSlice] = []
    for stream in streams:
        start, stop = window_bounds(stream.sample_count, window)
        idx = np.arange(start, stop, dtype=np.int64)
        out.append(
            StreamSlice(
                electrode=stream.electrode,
                start=start,
                timestamps=time_at(idx, sample_rate),
                potentials=stream.samples[start:stop],
            )
        )
    return out


def iter_sample_points(
    streams: Sequence[Stream],
    sample_rate: float,
    window: Optional[range | Tuple[int, int]] = None,
) -> Iterator[SamplePoint]:
    for piece in stream_slices(streams, sample_rate, window):
        electrode = piece.electrode
        for timestamp, potential in zip(piece.timestamps.tolist(), piece.potentials.tolist()):
            yield SamplePoint(electrode, timestamp, potential)


def sample_points(
    streams: Sequence[Stream],
    sample_rate: float,
    window: Optional[range | Tuple[int, int]] = None,
) -> List[SamplePoint]:
    """Return points stream-major, index-ascending within each stream.

    No merge across streams is performed; consumers grouping by electrode
    rely on this ordering.
    """
    return list(iter_sample_points(streams, sample_rate, window))


__all__ = [
    "SamplePoint",
    "StreamSlice",
    "iter_sample_points",
    "sample_points",
    "stream_slices",
    "window_bounds",
]
