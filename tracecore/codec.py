"""Compact binary persistence for :class:`~tracecore.document.DocumentContents`.

Layout (little endian)::

    header      magic "TRCE", version u16, flags u16, sample_count u32,
                sample_rate f64, stream_count u32, subject_len u32,
                info_len u32, event_type_count u32, epoch_length u32
    document id 16 bytes
    subject     utf-8, subject_len bytes
    info        utf-8, info_len bytes
    streams     stream_count x (id 16 bytes, prefix u8, suffix u8)
    events      event_type_count x (name_len u16, name utf-8,
                count u32, count x index u32)
    payload     encoding u8, decimals u8, zero_count u32, payload_len u32,
                zero_count x negative-zero position u64, compressed bytes
    trailer     crc32 u32 over every preceding byte

Sample values round-trip bit for bit. When every sample of the document is
exactly ``n / 10**d`` for a small ``d`` (the usual case for exported text),
the samples are stored as delta-coded scaled integers; otherwise the raw
float64 values are stored. Both forms go through Blosc (zstd, byte shuffle).
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import struct
from typing import List, Optional, Tuple
import uuid
import zlib

import numpy as np
from numcodecs import Blosc

from tracecore.document import DocumentContents, Stream
from tracecore.electrode import Electrode, Prefix
from tracecore.errors import CorruptedData, InvalidDocument, UnsupportedVersion

LOG = logging.getLogger(__name__)

MAGIC = b"TRCE"
FORMAT_VERSION = 1

FLAG_SUBJECT = 1 << 0
FLAG_INFO = 1 << 1
FLAG_EPOCH = 1 << 2

ENCODING_FLOAT64 = 0
ENCODING_SCALED_DELTA = 1

MAX_DECIMALS = 9

_HEADER = struct.Struct("<4sHHIdIIIII")
_STREAM = struct.Struct("<16sBB")
_EVENT_TYPE = struct.Struct("<H")
_COUNT = struct.Struct("<I")
_PAYLOAD = struct.Struct("<BBII")
_CRC = struct.Struct("<I")

_INT_LIMIT = 2 ** 53
_U16_MAX = 0xFFFF
_U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class CodecOptions:
    cname: str = "zstd"
    clevel: int = 5
    max_decimals: int = MAX_DECIMALS

    def compressor(self) -> Blosc:
        return Blosc(cname=self.cname, clevel=self.clevel, shuffle=Blosc.SHUFFLE)


# ----- sample payload -----


def _negative_zeros(samples: np.ndarray) -> np.ndarray:
    flat = samples.reshape(-1)
    return np.flatnonzero((flat == 0.0) & np.signbit(flat)).astype("<u8")


def _scaled_decimals(samples: np.ndarray, max_decimals: int) -> Optional[Tuple[int, np.ndarray]]:
    """Smallest ``d`` with ``round(x * 10**d) / 10**d`` bit-identical to ``x``.

    Negative zeros are compared as positive zeros; they are restored from
    their recorded positions.
    """
    if samples.size == 0 or not np.all(np.isfinite(samples)):
        return None
    samples = np.where(samples == 0.0, 0.0, samples)
    bits = samples.view(np.int64)
    for decimals in range(max_decimals + 1):
        scale = 10.0 ** decimals
        scaled = np.rint(samples * scale)
        if np.any(np.abs(scaled) >= _INT_LIMIT):
            return None
        ints = scaled.astype(np.int64)
        restored = ints.astype(np.float64) / scale
        if np.array_equal(restored.view(np.int64), bits):
            return decimals, ints
    return None


@dataclass(frozen=True)
class _Payload:
    encoding: int
    decimals: int
    negative_zeros: np.ndarray
    blob: bytes


def _encode_payload(samples: np.ndarray, options: CodecOptions) -> _Payload:
    no_zeros = np.zeros(0, dtype="<u8")
    if samples.size == 0:
        return _Payload(ENCODING_FLOAT64, 0, no_zeros, b"")
    compressor = options.compressor()
    scaled = _scaled_decimals(samples, min(options.max_decimals, MAX_DECIMALS))
    if scaled is not None:
        decimals, ints = scaled
        deltas = np.diff(ints, axis=1, prepend=0).astype("<i8")
        LOG.debug("Encoding %d samples as scaled integers (%d decimals)", samples.size, decimals)
        return _Payload(
            ENCODING_SCALED_DELTA,
            decimals,
            _negative_zeros(samples),
            bytes(compressor.encode(np.ascontiguousarray(deltas))),
        )
    LOG.debug("Encoding %d samples as raw float64", samples.size)
    raw = np.ascontiguousarray(samples, dtype="<f8")
    return _Payload(ENCODING_FLOAT64, 0, no_zeros, bytes(compressor.encode(raw)))


def _decode_payload(payload: _Payload, shape: Tuple[int, int]) -> np.ndarray:
    encoding, decimals, blob = payload.encoding, payload.decimals, payload.blob
    expected = shape[0] * shape[1]
    if payload.negative_zeros.size and int(payload.negative_zeros.max()) >= expected:
        raise CorruptedData("negative zero position outside sample payload")
    if expected == 0:
        if blob:
            raise CorruptedData("unexpected sample payload for empty document")
        return np.zeros(shape, dtype=np.float64)
    try:
        raw = Blosc().decode(blob)
    except (RuntimeError, ValueError) as exc:
        raise CorruptedData(f"sample payload failed to decompress: {exc}") from exc
    raw = bytes(raw)
    if len(raw) != expected * 8:
        raise CorruptedData(f"sample payload holds {len(raw)} bytes, expected {expected * 8}")
    if encoding == ENCODING_FLOAT64:
        return np.frombuffer(raw, dtype="<f8").astype(np.float64).reshape(shape)
    if encoding == ENCODING_SCALED_DELTA:
        if decimals > MAX_DECIMALS:
            raise CorruptedData(f"invalid decimal scale {decimals}")
        deltas = np.frombuffer(raw, dtype="<i8").reshape(shape)
        ints = np.cumsum(deltas, axis=1, dtype=np.int64)
        samples = ints.astype(np.float64) / (10.0 ** decimals)
        samples.reshape(-1)[payload.negative_zeros.astype(np.intp)] = -0.0
        return samples
    raise CorruptedData(f"unknown sample encoding {encoding}")


# ----- encode -----


def _check_limits(doc: DocumentContents, subject: bytes, info: bytes) -> None:
    sizes = [
        ("sample count", doc.sample_count or 0),
        ("stream count", len(doc.streams)),
        ("subject length", len(subject)),
        ("info length", len(info)),
        ("event type count", len(doc.events)),
        ("epoch length", doc.epoch_length or 0),
    ]
    sizes.extend((f"event {name!r} count", len(indices)) for name, indices in doc.events.items())
    for what, value in sizes:
        if value > _U32_MAX:
            raise InvalidDocument(f"{what} {value} does not fit the binary format")
    for name in doc.events:
        if len(name.encode("utf-8")) > _U16_MAX:
            raise InvalidDocument(f"event type name longer than {_U16_MAX} bytes")


def encode(doc: DocumentContents, options: Optional[CodecOptions] = None) -> bytes:
    options = options or CodecOptions()
    subject = (doc.subject or "").encode("utf-8")
    info = (doc.info or "").encode("utf-8")
    flags = 0
    if doc.subject is not None:
        flags |= FLAG_SUBJECT
    if doc.info is not None:
        flags |= FLAG_INFO
    if doc.epoch_length is not None:
        flags |= FLAG_EPOCH
    _check_limits(doc, subject, info)

    sample_count = doc.sample_count or 0
    parts: List[bytes] = [
        _HEADER.pack(
            MAGIC,
            FORMAT_VERSION,
            flags,
            sample_count,
            doc.sample_rate,
            len(doc.streams),
            len(subject),
            len(info),
            len(doc.events),
            doc.epoch_length or 0,
        ),
        doc.id.bytes,
        subject,
        info,
    ]
    for stream in doc.streams:
        parts.append(_STREAM.pack(stream.id.bytes, int(stream.electrode.prefix), stream.electrode.suffix))
    for event_type, indices in doc.events.items():
        name = event_type.encode("utf-8")
        parts.append(_EVENT_TYPE.pack(len(name)))
        parts.append(name)
        parts.append(_COUNT.pack(len(indices)))
        parts.append(np.asarray(indices, dtype="<u4").tobytes())

    if doc.streams:
        samples = np.stack([stream.samples for stream in doc.streams])
    else:
        samples = np.zeros((0, 0), dtype=np.float64)
    payload = _encode_payload(samples, options)
    parts.append(
        _PAYLOAD.pack(payload.encoding, payload.decimals, payload.negative_zeros.size, len(payload.blob))
    )
    parts.append(payload.negative_zeros.tobytes())
    parts.append(payload.blob)

    body = b"".join(parts)
    data = body + _CRC.pack(zlib.crc32(body))
    LOG.debug("Encoded document %s into %d bytes", doc.id, len(data))
    return data


# ----- decode -----


class _Reader:
    def __init__(self, data: bytes):
        self._data = memoryview(data)
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if n < 0 or end > len(self._data):
            raise CorruptedData("unexpected end of data")
        chunk = self._data[self._pos:end].tobytes()
        self._pos = end
        return chunk

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.take(fmt.size))

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos


def _text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptedData("metadata is not valid utf-8") from exc


def decode(data: bytes) -> DocumentContents:
    """Rebuild a document from :func:`encode` output.

    Raises :class:`UnsupportedVersion` for unknown versions and
    :class:`CorruptedData` for anything truncated or inconsistent.
    """
    data = bytes(data)
    if len(data) < _HEADER.size + _CRC.size:
        raise CorruptedData("data too short for header")
    if data[:4] != MAGIC:
        raise CorruptedData("bad magic")
    (version,) = struct.unpack_from("<H", data, 4)
    if version != FORMAT_VERSION:
        raise UnsupportedVersion(version)

    body, trailer = data[:-_CRC.size], data[-_CRC.size:]
    (crc,) = _CRC.unpack(trailer)
    if zlib.crc32(body) != crc:
        raise CorruptedData("checksum mismatch")

    reader = _Reader(body)
    (
        _magic,
        _version,
        flags,
        sample_count,
        sample_rate,
        stream_count,
        subject_len,
        info_len,
        event_type_count,
        epoch_length,
    ) = reader.unpack(_HEADER)

    doc_id = uuid.UUID(bytes=reader.take(16))
    subject = _text(reader.take(subject_len))
    info = _text(reader.take(info_len))

    identities: List[Tuple[uuid.UUID, Electrode]] = []
    for _ in range(stream_count):
        raw_id, prefix, suffix = reader.unpack(_STREAM)
        try:
            electrode = Electrode(Prefix(prefix), suffix)
        except ValueError as exc:
            raise CorruptedData(f"invalid electrode code {prefix}/{suffix}") from exc
        identities.append((uuid.UUID(bytes=raw_id), electrode))

    events = {}
    for _ in range(event_type_count):
        (name_len,) = reader.unpack(_EVENT_TYPE)
        name = _text(reader.take(name_len))
        (count,) = reader.unpack(_COUNT)
        indices = np.frombuffer(reader.take(count * 4), dtype="<u4")
        events[name] = [int(idx) for idx in indices]

    encoding, decimals, zero_count, payload_len = reader.unpack(_PAYLOAD)
    negative_zeros = np.frombuffer(reader.take(zero_count * 8), dtype="<u8")
    blob = reader.take(payload_len)
    if reader.remaining:
        raise CorruptedData(f"{reader.remaining} trailing bytes")

    payload = _Payload(encoding, decimals, negative_zeros, blob)
    samples = _decode_payload(payload, (stream_count, sample_count))
    streams = [
        Stream(electrode, samples[row], id=stream_id)
        for row, (stream_id, electrode) in enumerate(identities)
    ]
    try:
        return DocumentContents(
            streams=tuple(streams),
            sample_rate=sample_rate,
            subject=subject if flags & FLAG_SUBJECT else None,
            info=info if flags & FLAG_INFO else None,
            events=events,
            epoch_length=epoch_length if flags & FLAG_EPOCH else None,
            id=doc_id,
        )
    except InvalidDocument as exc:
        raise CorruptedData(str(exc)) from exc


# ----- files -----


def save(doc: DocumentContents, path: str | Path, options: Optional[CodecOptions] = None) -> Path:
    path = Path(path)
    data = encode(doc, options)
    path.write_bytes(data)
    LOG.debug("Wrote %s (%d bytes)", path, len(data))
    return path


def load(path: str | Path) -> DocumentContents:
    return decode(Path(path).read_bytes())


__all__ = [
    "CodecOptions",
    "FORMAT_VERSION",
    "MAGIC",
    "decode",
    "encode",
    "load",
    "save",
]
