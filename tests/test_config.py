from pathlib import Path

from config import TraceConfig
from tracecore.view_window import SampleWindow


def test_trace_config_defaults(tmp_path: Path):
    cfg = TraceConfig.load(tmp_path / "missing.ini")
    assert cfg.window_size == 100
    assert cfg.epoch_length is None
    assert cfg.hidden_event_types == ()
    assert cfg.codec_options().cname == "zstd"
    assert cfg.initial_window() == SampleWindow(0, 100)


def test_trace_config_parse(tmp_path: Path):
    ini_path = tmp_path / "trace.ini"
    ini_path.write_text(
        """
[codec]
clevel = 9
max_decimals = 4

[view]
window_size = 512
show_epochs = true

[events]
epoch_length = 256
hidden_types = blink, noise, blink
""".strip()
    )

    cfg = TraceConfig.load(ini_path)
    assert cfg.codec_clevel == 9
    assert cfg.codec_options().max_decimals == 4
    assert cfg.window_size == 512
    assert cfg.show_epochs is True
    assert cfg.epoch_length == 256
    assert cfg.hidden_event_types == ("blink", "noise")
    assert cfg.active_event_types(["blink", "stim", "noise"]) == ["stim"]


def test_trace_config_ignores_bad_values(tmp_path: Path):
    ini_path = tmp_path / "trace.ini"
    ini_path.write_text("[codec]\nclevel = 42\n[view]\nwindow_size = 0\n[events]\nepoch_length = soon\n")
    cfg = TraceConfig.load(ini_path)
    assert cfg.codec_clevel == 5
    assert cfg.window_size == 100
    assert cfg.epoch_length is None


def test_trace_config_ignores_unknown_compressor(tmp_path: Path):
    ini_path = tmp_path / "trace.ini"
    ini_path.write_text("[codec]\ncname = bogus\n")
    cfg = TraceConfig.load(ini_path)
    assert cfg.codec_cname == "zstd"
    assert cfg.codec_options().compressor().cname == "zstd"

    ini_path.write_text("[codec]\ncname = lz4\n")
    assert TraceConfig.load(ini_path).codec_cname == "lz4"


def test_trace_config_save(tmp_path: Path):
    ini_path = tmp_path / "trace.ini"
    cfg = TraceConfig.load(ini_path)
    cfg.hidden_event_types = ("blink", "custom")
    cfg.epoch_length = 64
    cfg.save()

    written = ini_path.read_text()
    assert "hidden_types = blink,custom" in written
    reloaded = TraceConfig.load(ini_path)
    assert reloaded.epoch_length == 64
    assert reloaded.hidden_event_types == ("blink", "custom")
