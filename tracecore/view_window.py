"""Helpers for managing sample-index view windows with clamping."""
from __future__ import annotations

from dataclasses import dataclass

from tracecore.document import time_at


@dataclass(frozen=True)
class SampleWindow:
    """Half-open window ``[lower, upper)`` of sample indices."""

    lower: int
    upper: int

    @property
    def size(self) -> int:
        return max(0, self.upper - self.lower)

    def as_range(self) -> range:
        return range(self.lower, self.upper)


def clamp_window(window: SampleWindow, *, total: int) -> SampleWindow:
    """Keep the window inside ``[0, total)`` while preserving its size when possible."""
    size = min(window.size, max(0, total))
    lower = max(0, min(window.lower, total - size))
    return SampleWindow(lower, lower + size)


def step_window(window: SampleWindow, direction: int, *, total: int) -> SampleWindow:
    """Move by one window width. Steps before index 0 or past the data are refused."""
    lower = window.lower + direction * window.size
    if lower < 0 or lower >= total:
        return window
    return SampleWindow(lower, lower + window.size)


def can_step(window: SampleWindow, direction: int, *, total: int) -> bool:
    return step_window(window, direction, total=total) != window


def zoom_window(window: SampleWindow, factor: float, *, anchor: int, total: int, min_size: int = 1) -> SampleWindow:
    if factor <= 0:
        raise ValueError("factor must be positive")
    size_new = max(min_size, int(round(window.size * factor)))

    # keep anchor position (relative 0..1) within window
    rel = 0.0
    if window.size > 0:
        rel = (anchor - window.lower) / window.size
    rel = min(1.0, max(0.0, rel))

    lower = int(round(anchor - rel * size_new))
    return clamp_window(SampleWindow(lower, lower + size_new), total=total)


def time_window(window: SampleWindow, sample_rate: float) -> tuple[float, float]:
    return time_at(window.lower, sample_rate), time_at(window.upper, sample_rate)


__all__ = ["SampleWindow", "can_step", "clamp_window", "step_window", "time_window", "zoom_window"]
