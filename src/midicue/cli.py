from __future__ import annotations
import argparse, pathlib, sys, time, traceback
from . import analyze, write
from .config import encoder_settings, load_config
from .errors import CueProtocolError
from .logging_config import LogVerbosity, configure_logging
from .protocol import ACTION_BY_NOTE, BLANK_NOTE
from .setlist import YamlSetlistStore
from .timeline import load_timeline


def _existing(path_str: str) -> pathlib.Path:
    path = pathlib.Path(path_str).expanduser().resolve()
    if not path.exists():
        print(f"[cli] ERROR: Input not found: {path}", file=sys.stderr)
        sys.exit(1)
    return path


def _cue_label(index: int) -> str:
    if index == BLANK_NOTE:
        return "blank"
    verb = ACTION_BY_NOTE.get(index)
    return verb.value if verb else f"slide {index}"


def cmd_export(args, cfg) -> None:
    in_path = _existing(args.timeline)
    out_path = pathlib.Path(args.outfile).expanduser().resolve() if args.outfile else in_path.with_suffix(".mid")
    print(f"[cli] timeline = {in_path}")

    tl = load_timeline(in_path)
    if args.bpm is not None:
        tl.bpm = args.bpm
    if args.no_payload:
        tl.embed_payload = False
    enc = write.write_cue_file(tl, str(out_path), encoder_settings(cfg))
    if enc.dropped:
        print(f"[cli] WARNING: {enc.dropped} cue(s) outside notes 0..127 were dropped")
    print(f"[cli] cues      -> {out_path}")
    print(f"[cli] Done. cues={enc.cue_count} ticks={enc.end_tick} tpb={enc.ticks_per_beat}")


def cmd_inspect(args, cfg) -> None:
    in_path = _existing(args.midifile)
    res = analyze.analyze_cue_file(in_path)
    item_type = res.item_type.value if res.item_type else f"unknown ({res.item_type_code})"
    print(f"[cli] file        = {in_path}")
    print(f"[cli] tempo       = {res.bpm:.2f} bpm, tpb={res.ticks_per_beat}")
    print(f"[cli] item type   = {item_type}")
    print(f"[cli] fingerprint = {res.fingerprint if res.fingerprint is not None else '-'}")
    print(f"[cli] payload     = {res.payload.title if res.payload else '-'}")
    for c in res.cues:
        print(f"[cli]   {c.timestamp_seconds:9.3f}s  note {c.index:3d}  {_cue_label(c.index)}")
    print(f"[cli] Done. cues={len(res.cues)} length={res.length_seconds:.2f}s")


def cmd_watch(args, cfg) -> None:
    from .watch import CueImporter, watch_directory

    directory = _existing(args.directory)
    importer = CueImporter(YamlSetlistStore(pathlib.Path(args.setlist).expanduser().resolve()))
    n = importer.import_directory(directory)
    print(f"[cli] imported {n} existing file(s) from {directory}")
    observer = watch_directory(directory, importer, polling=args.polling)
    print("[cli] watching (Ctrl+C to stop)")
    try:
        while observer.is_alive():
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        observer.stop()
        observer.join(1)
    print("[cli] Done.")


def main(argv=None):
    p = argparse.ArgumentParser(description="MIDI cue files for live show control")
    p.add_argument("--config", dest="config", default=None, help="YAML config (defaults applied if omitted)")
    p.add_argument("--verbosity", default=None, choices=[v.value for v in LogVerbosity],
                   help="Log verbosity (default from config)")
    p.add_argument("--log-file", dest="log_file", default=None, help="Also write the log to this file")
    sub = p.add_subparsers(dest="command", required=True)

    pe = sub.add_parser("export", help="Encode a recorded timeline (YAML) into a MIDI cue file")
    pe.add_argument("--timeline", required=True, help="Timeline YAML (cues, bpm, duration, item)")
    pe.add_argument("--out", dest="outfile", default=None, help="Output MIDI file (.mid); default next to the timeline")
    pe.add_argument("--bpm", type=float, default=None, help="Override the timeline tempo")
    pe.add_argument("--no-payload", action="store_true", help="Do not embed the item payload")
    pe.set_defaults(func=cmd_export)

    pi = sub.add_parser("inspect", help="Print what a MIDI cue file carries")
    pi.add_argument("midifile")
    pi.set_defaults(func=cmd_inspect)

    pw = sub.add_parser("watch", help="Auto-import cue files dropped into a folder")
    pw.add_argument("directory")
    pw.add_argument("--setlist", required=True, help="Setlist YAML to append imported items to")
    pw.add_argument("--polling", action="store_true", help="Use the polling observer (network drives)")
    pw.set_defaults(func=cmd_watch)

    args = p.parse_args(argv)

    cfg = load_config(args.config)
    configure_logging(args.verbosity or cfg["logging"].get("verbosity", "info"), args.log_file)

    try:
        args.func(args, cfg)
    except CueProtocolError as e:
        print(f"[cli] ERROR: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception:
        traceback.print_exc()
        sys.exit(2)


if __name__ == "__main__":
    main()
