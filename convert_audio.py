"""
Convert recorded audio files to MIDI.

Each input file is decoded, its loudest moments are mapped to pitches and a
single-track MIDI file is written next to it (or into --output-dir) as
<name>_converted.mid.

Architecture: Modular Design (Functional Core, Imperative Shell)
- audio_to_midi/ submodules: Core conversion logic
- convert_audio.py (this file): CLI orchestration

Usage:
    python convert_audio.py song.mp3
    python convert_audio.py take1.wav take2.wav -o midi/
    python convert_audio.py song.wav --show-notes
"""

from pathlib import Path
import argparse
from typing import List, Optional
import sys

from audio_to_midi.config import load_config, ConversionSettings
from audio_to_midi.helpers import is_audio_file
from audio_to_midi.midi import write_midi_file, read_midi_notes
from audio_to_midi.processor import run_conversion, ConversionResult


def convert_file(
    audio_path: Path,
    output_dir: Optional[Path],
    settings: ConversionSettings,
    show_notes: bool = False
) -> ConversionResult:
    """
    Convert one audio file and write the MIDI result to disk.

    Args:
        audio_path: Audio file to convert
        output_dir: Directory for the .mid file (None = next to the input)
        settings: Conversion settings
        show_notes: Print the notes read back from the written file

    Returns:
        ConversionResult for the file
    """
    print(f"\n{'='*60}")
    print(f"Converting: {audio_path.name}")
    print(f"{'='*60}\n")

    with open(audio_path, 'rb') as f:
        file_bytes = f.read()

    result = run_conversion(file_bytes, audio_path.name, settings=settings)

    target_dir = output_dir if output_dir is not None else audio_path.parent
    midi_path = write_midi_file(result.artifact.data, target_dir / result.artifact.file_name)

    if result.used_fallback:
        print(f"  Warning: used fallback notes ({result.reason.value})")
    print(f"  Notes: {result.note_count}")
    print(f"  Confidence: {result.confidence:.2f}")
    print(f"  Time: {result.processing_time:.2f}s")
    print(f"  Saved: {midi_path}")

    if show_notes:
        print(f"\n      {'#':>3s} {'Pitch':>6s} {'VelOn':>6s} {'VelOff':>7s}")
        for i, (pitch, vel_on, vel_off) in enumerate(read_midi_notes(midi_path), 1):
            print(f"      {i:3d} {pitch:6d} {vel_on:6d} {vel_off:7d}")
    print()

    return result


def convert_files(
    inputs: List[Path],
    output_dir: Optional[Path],
    settings: ConversionSettings,
    show_notes: bool = False
) -> List[ConversionResult]:
    """Convert every supported file in inputs, skipping the rest."""
    results = []
    for audio_path in inputs:
        if not audio_path.exists():
            print(f"  Warning: {audio_path} not found, skipping...")
            continue
        if not is_audio_file(audio_path.name):
            print(f"  Warning: {audio_path.name} is not a supported audio file, skipping...")
            continue
        results.append(convert_file(audio_path, output_dir, settings, show_notes))
    return results


def _settings_from_args(args) -> ConversionSettings:
    config_path = Path(args.config) if args.config else None
    try:
        config = load_config(config_path)
    except Exception as e:
        print(f"ERROR: Failed to load config: {e}")
        sys.exit(1)

    settings = ConversionSettings.from_config(config)
    if args.max_windows is not None:
        settings.max_windows = args.max_windows
    if args.threshold is not None:
        settings.peak_threshold = args.threshold
    if args.max_events is not None:
        settings.max_events = args.max_events
    if args.max_duration is not None:
        settings.max_duration = args.max_duration
    return settings


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Convert recorded audio files to single-track MIDI.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert one file, MIDI is written next to it
  python convert_audio.py song.mp3

  # Several files into one directory
  python convert_audio.py a.wav b.m4a -o midi/

  # More notes from quieter audio
  python convert_audio.py song.wav -t 0.05 --max-events 16 --max-windows 32

Supported formats: .mp3 .wav .m4a .aac
        """
    )

    parser.add_argument('inputs', type=str, nargs='+',
                        help="Audio files to convert.")
    parser.add_argument('-o', '--output-dir', type=str, default=None,
                        help="Directory for MIDI files (default: next to each input).")
    parser.add_argument('--config', type=str, default=None,
                        help="Path to a YAML config (default: audio_to_midi/audioconfig.yaml).")
    parser.add_argument('--max-windows', type=int, default=None,
                        help="Number of analysis windows. If not specified, uses value from config.")
    parser.add_argument('-t', '--threshold', type=float, default=None,
                        help="Peak threshold (0-1, lower = more notes). If not specified, uses value from config.")
    parser.add_argument('--max-events', type=int, default=None,
                        help="Maximum notes written. If not specified, uses value from config.")
    parser.add_argument('--max-duration', type=float, default=None,
                        help="Seconds of audio analyzed. If not specified, uses value from config.")
    parser.add_argument('--show-notes', action='store_true',
                        help="Print the notes read back from each MIDI file.")

    args = parser.parse_args(argv)

    # Validate
    if args.threshold is not None and not (0.0 <= args.threshold <= 1.0):
        print("ERROR: --threshold must be between 0.0 and 1.0")
        sys.exit(1)
    if args.max_windows is not None and args.max_windows < 1:
        print("ERROR: --max-windows must be at least 1")
        sys.exit(1)
    if args.max_events is not None and args.max_events < 1:
        print("ERROR: --max-events must be at least 1")
        sys.exit(1)
    if args.max_duration is not None and args.max_duration <= 0:
        print("ERROR: --max-duration must be positive")
        sys.exit(1)

    settings = _settings_from_args(args)

    output_dir = Path(args.output_dir) if args.output_dir else None
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    results = convert_files([Path(p) for p in args.inputs], output_dir, settings, args.show_notes)
    if not results:
        print("No supported audio files were converted.")
        sys.exit(1)

    fallback_count = sum(1 for r in results if r.used_fallback)
    print(f"Converted {len(results)} file(s), {fallback_count} with fallback notes.")


if __name__ == '__main__':
    main()
