"""Timeline positions of events and epochs as fractions of the recording."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

from tracecore.document import Event


def event_proportion(sample_count: int, sample_index: int) -> float:
    # Events sit at the end of the indexed sample, hence the +1.
    return (sample_index + 1) / sample_count


def epoch_end_proportion(sample_count: int, sample_index: int, epoch_length: int) -> float:
    """End of the epoch following ``sample_index``. Not clamped to 1.0."""
    return (epoch_length + sample_index + 1) / sample_count


def cursor_proportion(sample_count: int, sample_index: int) -> float:
    return sample_index / sample_count


@dataclass(frozen=True)
class EventOverlay:
    event: Event
    position: float
    epoch_end: Optional[float] = None

    @property
    def exceeds_recording(self) -> bool:
        return self.epoch_end is not None and self.epoch_end > 1.0


def filter_events(events: Mapping[str, Sequence[int]], active_types: Iterable[str]) -> List[Event]:
    active = set(active_types)
    return [
        Event(event_type, idx)
        for event_type in sorted(events)
        if event_type in active
        for idx in events[event_type]
    ]


def overlays(
    events: Iterable[Event],
    sample_count: int,
    epoch_length: Optional[int] = None,
) -> List[EventOverlay]:
    """Positions for already-filtered ``events``; epochs only when ``epoch_length`` is given."""
    out: List[EventOverlay] = []
    for event in events:
        epoch_end = None
        if epoch_length is not None:
            epoch_end = epoch_end_proportion(sample_count, event.sample_index, epoch_length)
        out.append(
            EventOverlay(
                event=event,
                position=event_proportion(sample_count, event.sample_index),
                epoch_end=epoch_end,
            )
        )
    return out


__all__ = [
    "EventOverlay",
    "cursor_proportion",
    "epoch_end_proportion",
    "event_proportion",
    "filter_events",
    "overlays",
]
