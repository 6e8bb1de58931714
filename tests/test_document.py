from collections.abc import Hashable
import uuid

import numpy as np
import pytest

from tracecore.document import DocumentContents, Event, Stream, time_at
from tracecore.electrode import Prefix, resolve
from tracecore.errors import InvalidDocument


def make_doc(n=500, rate=100.0, symbols=("Fp1", "O2", "Cz"), **kwargs):
    streams = tuple(
        Stream(resolve(symbol), np.linspace(-i, i + 1, n)) for i, symbol in enumerate(symbols)
    )
    return DocumentContents(streams=streams, sample_rate=rate, **kwargs)


def test_duration_and_time_scenario():
    doc = make_doc(n=500, rate=100.0)
    assert doc.sample_count == 500
    assert doc.duration == 5.0
    assert doc.time(at=250) == 2.5
    assert doc.time(at=0) == 0.0
    assert doc.time(at=doc.sample_count) == doc.duration


def test_time_is_monotonic():
    doc = make_doc(n=10, rate=256.0)
    times = [doc.time(at=i) for i in range(1000)]
    assert all(b > a for a, b in zip(times, times[1:]))


def test_time_at_array_matches_scalar():
    idx = np.arange(0, 40)
    vec = time_at(idx, 3.0)
    assert vec.tolist() == [time_at(int(i), 3.0) for i in idx]


def test_empty_document_has_no_derived_values():
    doc = DocumentContents(streams=(), sample_rate=250.0)
    assert doc.sample_count is None
    assert doc.duration is None
    assert doc.potential_range is None
    assert doc.prefixes == []


def test_potential_range_spans_all_streams():
    streams = (
        Stream(resolve("C3"), [0.5, -2.0, 1.0]),
        Stream(resolve("C4"), [3.5, 0.0, -1.0]),
    )
    doc = DocumentContents(streams=streams, sample_rate=10.0)
    assert doc.potential_range == (-2.0, 3.5)


def test_potential_range_none_when_streams_are_empty():
    doc = DocumentContents(streams=(Stream(resolve("C3"), []),), sample_rate=10.0)
    assert doc.sample_count == 0
    assert doc.potential_range is None


def test_prefixes_sorted_by_region_order():
    doc = make_doc(symbols=("O1", "Cz", "Fp2", "C3", "O2"))
    assert doc.prefixes == [Prefix.FP, Prefix.C, Prefix.O]


def test_streams_keep_given_order_and_sort_on_request():
    doc = make_doc(symbols=("O1", "C4", "C3"))
    assert [s.electrode.symbol for s in doc.streams] == ["O1", "C4", "C3"]
    assert [s.electrode.symbol for s in doc.sorted_streams()] == ["C3", "C4", "O1"]
    assert [s.electrode.symbol for s in doc.streams_for_prefix(Prefix.C)] == ["C3", "C4"]


def test_rejects_differing_stream_lengths():
    streams = (Stream(resolve("C3"), [1.0, 2.0]), Stream(resolve("C4"), [1.0]))
    with pytest.raises(InvalidDocument):
        DocumentContents(streams=streams, sample_rate=10.0)


@pytest.mark.parametrize("rate", [0.0, -5.0, float("nan"), float("inf")])
def test_rejects_bad_sample_rate(rate):
    with pytest.raises(InvalidDocument):
        make_doc(rate=rate)


def test_rejects_out_of_range_events():
    with pytest.raises(InvalidDocument):
        make_doc(n=100, events={"blink": [100]})
    with pytest.raises(InvalidDocument):
        make_doc(n=100, events={"blink": [-1]})


def test_rejects_negative_epoch_length():
    with pytest.raises(InvalidDocument):
        make_doc(epoch_length=-1)


def test_rejects_non_integer_indices():
    with pytest.raises(InvalidDocument):
        make_doc(n=100, events={"blink": [1.5]})
    with pytest.raises(InvalidDocument):
        make_doc(n=100, epoch_length=2.5)
    doc = make_doc(n=100, events={"blink": np.array([7, 3], dtype=np.uint32)})
    assert doc.events == {"blink": (3, 7)}
    assert all(type(idx) is int for idx in doc.events["blink"])


def test_documents_are_not_hashable():
    doc = make_doc(n=10, events={"stim": [1]})
    assert not isinstance(doc, Hashable)
    with pytest.raises(TypeError):
        hash(doc)


def test_events_grouped_and_sorted():
    doc = make_doc(n=100, events={"stim": [40, 3, 40, 10], "blink": (99,)})
    assert doc.events == {"blink": (99,), "stim": (3, 10, 40)}
    assert doc.event_types == ["blink", "stim"]
    assert doc.events_list(["stim"]) == [Event("stim", 3), Event("stim", 10), Event("stim", 40)]
    assert len(doc.events_list()) == 4


def test_samples_are_read_only_copies():
    source = np.array([1.0, 2.0, 3.0])
    stream = Stream(resolve("Pz"), source)
    source[0] = 100.0
    assert stream.samples[0] == 1.0
    with pytest.raises(ValueError):
        stream.samples[0] = 5.0


def test_stream_lookup_and_value_updates():
    doc = make_doc(n=10)
    target = doc.streams[1]
    assert doc.stream(target.id) is target
    with pytest.raises(KeyError):
        doc.stream(uuid.uuid4())

    trimmed = doc.with_streams(doc.streams[:1])
    assert len(trimmed.streams) == 1
    assert trimmed.id == doc.id
    assert len(doc.streams) == 3

    tagged = doc.with_events({"stim": [1, 2]})
    assert tagged.events == {"stim": (1, 2)}
    assert doc.events == {}
    with pytest.raises(InvalidDocument):
        doc.with_streams(doc.streams + (Stream(resolve("T7"), [0.0]),))


def test_stream_equality_uses_identity_and_values():
    electrode = resolve("F7")
    a = Stream(electrode, [1.0, 2.0])
    b = Stream(electrode, [1.0, 2.0], id=a.id)
    c = Stream(electrode, [1.0, 2.0])
    assert a == b
    assert a != c


def test_stream_ids_must_be_unique():
    stream = Stream(resolve("F7"), [1.0])
    with pytest.raises(InvalidDocument):
        DocumentContents(streams=(stream, stream), sample_rate=1.0)
