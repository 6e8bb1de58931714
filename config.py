from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from numcodecs.blosc import list_compressors

from tracecore.codec import CodecOptions, MAX_DECIMALS
from tracecore.view_window import SampleWindow

LOG = logging.getLogger(__name__)


@dataclass
class TraceConfig:
    codec_cname: str = "zstd"
    codec_clevel: int = 5
    codec_max_decimals: int = MAX_DECIMALS
    window_size: int = 100
    show_epochs: bool = False
    epoch_length: int | None = None
    hidden_event_types: tuple[str, ...] = ()
    zarr_chunk_samples: int = 4096
    ini_path: Path | None = None

    @classmethod
    def load(cls, ini_path: str | Path | None = None) -> "TraceConfig":
        cfg = cls()
        path = Path(ini_path or "trace.ini")
        if path.exists():
            import configparser

            parser = configparser.ConfigParser()
            parser.read(path)
            section = parser["codec"] if "codec" in parser else None
            if section:
                cname = section.get("cname", fallback=cfg.codec_cname).strip()
                if cname in list_compressors():
                    cfg.codec_cname = cname
                else:
                    LOG.warning("Ignoring unsupported codec cname %r", cname)
                clevel = section.getint("clevel", fallback=cfg.codec_clevel)
                if 0 <= clevel <= 9:
                    cfg.codec_clevel = clevel
                else:
                    LOG.warning("Ignoring codec clevel %s outside 0..9", clevel)
                decimals = section.getint("max_decimals", fallback=cfg.codec_max_decimals)
                cfg.codec_max_decimals = max(0, min(MAX_DECIMALS, decimals))
                cfg.zarr_chunk_samples = max(
                    1, section.getint("zarr_chunk_samples", fallback=cfg.zarr_chunk_samples)
                )

            view_section = parser["view"] if "view" in parser else None
            if view_section:
                size = view_section.getint("window_size", fallback=cfg.window_size)
                if size > 0:
                    cfg.window_size = size
                else:
                    LOG.warning("Ignoring non-positive window_size %s", size)
                cfg.show_epochs = view_section.getboolean("show_epochs", fallback=cfg.show_epochs)

            events_section = parser["events"] if "events" in parser else None
            if events_section:
                raw_epoch = events_section.get("epoch_length", fallback="").strip()
                if raw_epoch:
                    try:
                        value = int(raw_epoch)
                    except ValueError:
                        LOG.warning("Ignoring invalid epoch_length %r", raw_epoch)
                    else:
                        if value >= 0:
                            cfg.epoch_length = value
                hidden_raw = events_section.get("hidden_types", fallback="")
                names = [part.strip() for part in hidden_raw.split(",") if part.strip()]
                # Preserve unique entries while maintaining relative order
                cfg.hidden_event_types = tuple(dict.fromkeys(names))
        cfg.ini_path = path
        return cfg

    def codec_options(self) -> CodecOptions:
        return CodecOptions(
            cname=self.codec_cname,
            clevel=self.codec_clevel,
            max_decimals=self.codec_max_decimals,
        )

    def initial_window(self) -> SampleWindow:
        return SampleWindow(0, self.window_size)

    def active_event_types(self, available: list[str]) -> list[str]:
        hidden = set(self.hidden_event_types)
        return [name for name in available if name not in hidden]

    def save(self) -> None:
        if self.ini_path is None:
            return
        import configparser

        parser = configparser.ConfigParser()
        parser["codec"] = {
            "cname": self.codec_cname,
            "clevel": str(self.codec_clevel),
            "max_decimals": str(self.codec_max_decimals),
            "zarr_chunk_samples": str(self.zarr_chunk_samples),
        }
        parser["view"] = {
            "window_size": str(self.window_size),
            "show_epochs": "true" if self.show_epochs else "false",
        }
        parser["events"] = {
            "epoch_length": "" if self.epoch_length is None else str(self.epoch_length),
            "hidden_types": ",".join(dict.fromkeys(self.hidden_event_types)),
        }
        with self.ini_path.open("w") as fh:
            parser.write(fh)
