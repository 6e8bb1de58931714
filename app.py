# app.py
import argparse
import logging
import sys

from config import TraceConfig
from tracecore import codec, zarr_store
from tracecore.csv_import import import_streams_file
from tracecore.document import DocumentContents
from tracecore.errors import TraceError

LOG = logging.getLogger("tracecore.app")


def import_csv(
    csv_path,
    out_path,
    *,
    sample_rate: float,
    subject: str | None = None,
    info: str | None = None,
    epoch_length: int | None = None,
    config: TraceConfig | None = None,
) -> DocumentContents:
    cfg = config or TraceConfig()
    streams = import_streams_file(csv_path)
    doc = DocumentContents(
        streams=tuple(streams),
        sample_rate=sample_rate,
        subject=subject,
        info=info,
        epoch_length=epoch_length if epoch_length is not None else cfg.epoch_length,
    )
    codec.save(doc, out_path, cfg.codec_options())
    LOG.info("Imported %d streams from %s into %s", len(doc.streams), csv_path, out_path)
    return doc


def describe(doc: DocumentContents) -> list[str]:
    lines = [
        f"id: {doc.id}",
        f"subject: {doc.subject or '-'}",
        f"sample rate: {doc.sample_rate:g} Hz",
        f"streams: {len(doc.streams)}",
    ]
    if doc.sample_count is not None:
        lines.append(f"samples: {doc.sample_count}")
        lines.append(f"duration: {doc.duration:.3f} s")
    if doc.potential_range is not None:
        lo, hi = doc.potential_range
        lines.append(f"potential range: {lo:g} .. {hi:g}")
    if doc.prefixes:
        lines.append("regions: " + ", ".join(prefix.label for prefix in doc.prefixes))
    lines.append("electrodes: " + ", ".join(s.electrode.symbol for s in doc.streams))
    for event_type in doc.event_types:
        lines.append(f"events[{event_type}]: {len(doc.events[event_type])}")
    if doc.epoch_length is not None:
        lines.append(f"epoch length: {doc.epoch_length} samples")
    return lines


def main(argv=None) -> int:
    p = argparse.ArgumentParser(prog="trace")
    p.add_argument("--config")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="convert a CSV recording to the compact format")
    imp.add_argument("csv_path")
    imp.add_argument("out_path")
    imp.add_argument("--sample-rate", type=float, required=True)
    imp.add_argument("--subject")
    imp.add_argument("--info")
    imp.add_argument("--epoch-length", type=int)

    inf = sub.add_parser("info", help="summarise a compact recording")
    inf.add_argument("path")

    exp = sub.add_parser("export-zarr", help="write a compact recording to a zarr store")
    exp.add_argument("path")
    exp.add_argument("out_path")

    args = p.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    cfg = TraceConfig.load(args.config)

    try:
        if args.command == "import":
            import_csv(
                args.csv_path,
                args.out_path,
                sample_rate=args.sample_rate,
                subject=args.subject,
                info=args.info,
                epoch_length=args.epoch_length,
                config=cfg,
            )
        elif args.command == "info":
            print("\n".join(describe(codec.load(args.path))))
        elif args.command == "export-zarr":
            zarr_store.write_document(
                codec.load(args.path),
                args.out_path,
                max_chunk_samples=cfg.zarr_chunk_samples,
            )
    except (TraceError, OSError) as exc:
        LOG.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
