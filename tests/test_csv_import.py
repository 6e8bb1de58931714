from pathlib import Path

import numpy as np
import pytest

from tracecore.csv_import import import_streams, import_streams_file
from tracecore.electrode import resolve
from tracecore.errors import MalformedSample, RowColumnMismatch, UnrecognizedElectrode


def test_import_two_streams():
    streams = import_streams("Fp1,Fp2\n1.0,2.0\n3.0,-4.0\n")
    assert [s.electrode for s in streams] == [resolve("Fp1"), resolve("Fp2")]
    np.testing.assert_array_equal(streams[0].samples, [1.0, 3.0])
    np.testing.assert_array_equal(streams[1].samples, [2.0, -4.0])


def test_counts_match_header_and_rows():
    header = ["O2", "Cz", "F3", "T8"]
    rows = [",".join(str(r * 10 + c) for c in range(len(header))) for r in range(25)]
    streams = import_streams("\n".join([",".join(header)] + rows))
    assert len(streams) == len(header)
    assert all(s.sample_count == 25 for s in streams)
    assert [s.electrode.symbol for s in streams] == header
    np.testing.assert_array_equal(streams[2].samples, np.arange(25) * 10 + 2)


def test_blank_lines_and_stray_characters_are_ignored():
    text = '\n Fp1 , c4\r\n\n"1.5 uV", 2mV \n\n-0.25,  3\n'
    streams = import_streams(text)
    np.testing.assert_array_equal(streams[0].samples, [1.5, -0.25])
    np.testing.assert_array_equal(streams[1].samples, [2.0, 3.0])


def test_header_only_gives_empty_streams():
    streams = import_streams("Fp1,Fp2\n")
    assert [s.sample_count for s in streams] == [0, 0]


def test_empty_text_gives_no_streams():
    assert import_streams("\n\n") == []


def test_unknown_electrode_aborts():
    with pytest.raises(UnrecognizedElectrode) as info:
        import_streams("Fp1,XQ9\n1,2\n")
    assert info.value.symbol == "XQ9"


def test_malformed_sample_reports_position():
    with pytest.raises(MalformedSample) as info:
        import_streams("Fp1,Fp2\n1,2\n3,abc\n")
    assert (info.value.row, info.value.column) == (1, 1)


def test_multiple_decimal_points_are_malformed():
    with pytest.raises(MalformedSample):
        import_streams("Cz\n1.2.3\n")


@pytest.mark.parametrize("line", ["1", "1,2,3"])
def test_row_column_mismatch_aborts(line):
    with pytest.raises(RowColumnMismatch) as info:
        import_streams(f"Fp1,Fp2\n1,2\n{line}\n")
    assert info.value.row == 1
    assert info.value.expected == 2


def test_import_streams_file(tmp_path: Path):
    path = tmp_path / "rec.csv"
    path.write_text("Cz,Pz\n0.5,1\n")
    streams = import_streams_file(path)
    assert [s.electrode.symbol for s in streams] == ["Cz", "Pz"]
