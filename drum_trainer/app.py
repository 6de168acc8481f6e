#!/usr/bin/env python3
import argparse
import sys

import mido
from mido import MidiFile

from drum_trainer import setup_logging
from drum_trainer.capture import MicrophoneSource, SyntheticSource
from drum_trainer.chart import DEFAULT_PATTERN, extract_chart, parse_pattern
from drum_trainer.config import DEFAULT_BPM, MATCHING, MODES, STRICTNESS, TrainerConfig
from drum_trainer.errors import ConfigurationError
from drum_trainer.midi_io import MidiInputLoop
from drum_trainer.midi_time import estimate_bpm
from drum_trainer.notifier import ArduinoNotifier, FanoutNotifier, PrintNotifier, find_serial
from drum_trainer.session import PracticeSession
from drum_trainer.stats import performance_grade


def list_ports():
    print("Available MIDI inputs:")
    for name in mido.get_input_names():
        print("  -", name)
    try:
        import sounddevice as sd
        print("\nAudio input devices:")
        for i, dev in enumerate(sd.query_devices()):
            if dev["max_input_channels"] > 0:
                print(f"  - [{i}] {dev['name']}")
    except Exception as e:
        print(f"\nAudio devices unavailable: {e}")
    try:
        import serial.tools.list_ports
        print("\nAvailable Serial ports:")
        for p in serial.tools.list_ports.comports():
            print("  -", p.device, "|", p.description)
    except ImportError:
        pass


def build_config(args) -> TrainerConfig:
    cfg = TrainerConfig.load(args.config) if args.config else TrainerConfig()
    return cfg.with_overrides(
        mode=args.mode,
        matching=args.matching,
        strictness=args.strictness,
        duration=args.duration,
        note_limit=args.notes,
        amplitude_threshold=args.threshold,
    ).validate()


def print_results(stats: dict):
    print("\n----- Results -----")
    for k, v in stats.items():
        if k == "avg_abs_dt_ms":
            print(f"{k:>18s}: {v:.1f}")
        elif k == "per_kind":
            for kind, score in v.items():
                print(f"{kind:>18s}: {score}")
        else:
            print(f"{k:>18s}: {v}")
    grade, message = performance_grade(stats.get("accuracy", 0))
    print(f"\n{grade}  {message}")


def main(argv=None):
    ap = argparse.ArgumentParser(description="Drum timing trainer: play along, get judged on every note.")
    src = ap.add_mutually_exclusive_group()
    src.add_argument("--midi", help="GM drum MIDI file to practice (channel 10)")
    src.add_argument("--pattern", action="append",
                     help="Track grid like 'hihat:x.x.x.x.x.x.x.x.' (repeatable)")
    ap.add_argument("--bpm", type=float, help=f"Tempo (default {DEFAULT_BPM}, or the MIDI file's)")
    ap.add_argument("--input", default="synthetic",
                    help="'mic', 'synthetic' (a perfect drummer), or a MIDI input name")
    ap.add_argument("--device", help="Audio input device for --input mic")
    ap.add_argument("--mode", choices=MODES, help="notes: stop after N notes; timed: loop for a duration; "
                                                 "continuous: play the schedule once")
    ap.add_argument("--matching", choices=MATCHING, help="Override the mode's matching strategy")
    ap.add_argument("--strictness", choices=STRICTNESS, help="What a hit between beats counts as")
    ap.add_argument("--duration", type=float, help="Seconds for timed mode")
    ap.add_argument("--notes", type=int, help="Note count for notes mode")
    ap.add_argument("--threshold", type=float, help="Onset RMS threshold")
    ap.add_argument("--config", help="YAML file with config overrides")
    ap.add_argument("--no-click", action="store_true", help="Disable metronome click")
    ap.add_argument("--serial", help="Arduino serial (full path or substring, e.g. 'usbmodem', 'COM5')")
    ap.add_argument("--baud", type=int, default=115200, help="Arduino baud (default 115200)")
    ap.add_argument("--log-level", default="WARNING")
    ap.add_argument("--list", action="store_true", help="List MIDI, audio and serial ports and exit")
    args = ap.parse_args(argv)

    setup_logging(args.log_level)
    if args.list:
        list_ports()
        return 0

    try:
        config = build_config(args)
        if args.midi:
            notes, tempo_map = extract_chart(MidiFile(args.midi))
            if not notes:
                print("No kick/snare/hi-hat notes found on channel 10 in this MIDI.")
                return 1
            bpm = args.bpm or estimate_bpm(tempo_map)
            session_kw = dict(notes=notes, bpm=bpm)
            hits = [(n.time, n.instrument) for n in notes]
        else:
            pattern = parse_pattern(args.pattern) if args.pattern else DEFAULT_PATTERN
            session_kw = dict(pattern=pattern, bpm=args.bpm or DEFAULT_BPM)
            hits = None
    except (ConfigurationError, OSError) as e:
        print(f"Configuration error: {e}")
        return 2

    hit_sources = []
    if args.input == "mic":
        source = MicrophoneSource(config, device=args.device)
    elif args.input == "synthetic":
        source = None
    else:
        source = None
        hit_sources.append(MidiInputLoop(args.input).run)

    notifier = None
    if args.serial:
        port = find_serial(args.serial)
        if not port:
            print("[WARN] Serial port not found. Proceeding without Arduino.")
        else:
            notifier = ArduinoNotifier(port, args.baud)
    notifier = FanoutNotifier(PrintNotifier(), notifier)

    try:
        session = PracticeSession(config, source=source, notifier=notifier,
                                  play_click=not args.no_click, **session_kw)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        notifier.close()
        return 2
    if args.input == "synthetic":
        # a perfect drummer playing every note of the first loop
        hits = hits or [(n.time, n.instrument) for n in session.template]
        session.source = SyntheticSource(hits, config)

    if session.start(start_delay=1.0) is None:
        print(f"Input unavailable: {session.state.input_error}")
        notifier.close()
        return 1

    try:
        session.run(hit_sources)
    finally:
        stats = session.results()
        notifier.close()
        print_results(stats)
    if session.state.input_error:
        print(f"Input lost: {session.state.input_error}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
