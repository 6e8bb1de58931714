"""Chunked zarr layout for large recordings.

Each stream becomes one float64 array under ``streams/<position>``; document
metadata and events live in the root attributes. :class:`ZarrRecording`
reads windows lazily, so only the chunks covering a window are loaded.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple
import uuid

import numpy as np
import zarr

from tracecore.document import DocumentContents, Stream, time_at
from tracecore.electrode import Electrode, Prefix
from tracecore.errors import CorruptedData, InvalidDocument, UnsupportedVersion
from tracecore.sample_query import StreamSlice, window_bounds

LOG = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


@dataclass
class DocumentToZarr:
    doc: DocumentContents
    store: Any
    max_chunk_samples: int = 4096
    progress_callback: Optional[Callable[[int, int], None]] = None

    def build(self) -> zarr.Group:
        group = zarr.open_group(store=self.store, mode="w")
        self._write_root_attrs(group)
        self._write_streams(group)
        return group

    # ------------------------------------------------------------------

    def _write_root_attrs(self, group: zarr.Group) -> None:
        doc = self.doc
        attrs = group.attrs
        attrs["schema_version"] = SCHEMA_VERSION
        attrs["created_at"] = datetime.now(timezone.utc).isoformat()
        attrs["id"] = str(doc.id)
        attrs["subject"] = doc.subject
        attrs["info"] = doc.info
        attrs["sample_rate"] = float(doc.sample_rate)
        attrs["sample_count"] = doc.sample_count
        attrs["epoch_length"] = doc.epoch_length
        attrs["events"] = {name: list(indices) for name, indices in doc.events.items()}
        attrs["streams"] = [
            {"id": str(s.id), "prefix": int(s.electrode.prefix), "suffix": s.electrode.suffix}
            for s in doc.streams
        ]

    def _write_streams(self, group: zarr.Group) -> None:
        streams_group = group.create_group("streams")
        total = sum(stream.sample_count for stream in self.doc.streams)
        done = 0
        chunk_len = max(1, int(self.max_chunk_samples))
        for idx, stream in enumerate(self.doc.streams):
            # zarr 3 renamed create_dataset to create_array
            create = getattr(streams_group, "create_array", None) or streams_group.create_dataset
            array = create(
                str(idx),
                shape=(stream.sample_count,),
                chunks=(chunk_len,),
                dtype="float64",
                overwrite=True,
            )
            array.attrs["symbol"] = stream.electrode.symbol
            for start in range(0, stream.sample_count, chunk_len):
                stop = min(stream.sample_count, start + chunk_len)
                array[start:stop] = stream.samples[start:stop]
                done += stop - start
                if self.progress_callback:
                    self.progress_callback(done, max(1, total))
        LOG.debug("Wrote %d streams to zarr store", len(self.doc.streams))


def _identities(attrs) -> List[Tuple[uuid.UUID, Electrode]]:
    out = []
    for entry in attrs.get("streams", []):
        try:
            out.append(
                (uuid.UUID(entry["id"]), Electrode(Prefix(int(entry["prefix"])), int(entry["suffix"])))
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CorruptedData(f"invalid stream entry {entry!r}") from exc
    return out


class ZarrRecording:
    """Lazy, read-only access to a document written by :class:`DocumentToZarr`."""

    def __init__(self, store: Any):
        self._root = zarr.open_group(store=store, mode="r")
        attrs = self._root.attrs
        version = str(attrs.get("schema_version", ""))
        if version != SCHEMA_VERSION:
            raise UnsupportedVersion(version)
        self.sample_rate = float(attrs.get("sample_rate", 0.0))
        self.identities = _identities(attrs)
        streams_group = self._root["streams"] if self.identities else None
        self._arrays = [streams_group[str(idx)] for idx in range(len(self.identities))]

    @property
    def electrodes(self) -> List[Electrode]:
        return [electrode for _, electrode in self.identities]

    def stream_length(self, idx: int) -> int:
        return int(self._arrays[idx].shape[0])

    def read_window(self, idx: int, window: Optional[range | Tuple[int, int]] = None) -> StreamSlice:
        start, stop = window_bounds(self.stream_length(idx), window)
        data = np.asarray(self._arrays[idx][start:stop], dtype=np.float64)
        return StreamSlice(
            electrode=self.identities[idx][1],
            start=start,
            timestamps=time_at(np.arange(start, stop, dtype=np.int64), self.sample_rate),
            potentials=data,
        )

    def to_document(self) -> DocumentContents:
        attrs = self._root.attrs
        streams = [
            Stream(electrode, np.asarray(self._arrays[idx][:], dtype=np.float64), id=stream_id)
            for idx, (stream_id, electrode) in enumerate(self.identities)
        ]
        try:
            return DocumentContents(
                streams=tuple(streams),
                sample_rate=self.sample_rate,
                subject=attrs.get("subject"),
                info=attrs.get("info"),
                events=attrs.get("events") or {},
                epoch_length=attrs.get("epoch_length"),
                id=uuid.UUID(attrs["id"]),
            )
        except (InvalidDocument, KeyError, ValueError) as exc:
            raise CorruptedData(str(exc)) from exc


def write_document(doc: DocumentContents, path: str | Path, *, max_chunk_samples: int = 4096) -> zarr.Group:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return DocumentToZarr(doc, str(path), max_chunk_samples=max_chunk_samples).build()


def read_document(store: Any) -> DocumentContents:
    return ZarrRecording(store).to_document()


__all__ = ["DocumentToZarr", "SCHEMA_VERSION", "ZarrRecording", "read_document", "write_document"]
