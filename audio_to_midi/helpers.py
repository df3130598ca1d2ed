"""
Pure helper functions for audio-to-MIDI conversion.

These are functional core functions - pure, deterministic, no I/O or side effects.
Pitch mapping (the note mapper) and file-name handling live here for testability.
"""

import math
import re
from pathlib import PurePath
from typing import Iterable, List, Optional

import numpy as np

from .config import PitchEvent


__all__ = [
    'ACCEPTED_EXTENSIONS',
    'FALLBACK_TRIAD',
    'FALLBACK_SCALE',
    'MIDI_MIME_TYPE',
    'ensure_mono',
    'clip_to_duration',
    'clamp_midi_byte',
    'clamp_pitch',
    'peak_to_pitch',
    'map_to_pitches',
    'to_pitch_events',
    'derive_output_name',
    'is_audio_file',
]


ACCEPTED_EXTENSIONS = ('.mp3', '.wav', '.m4a', '.aac')
MIDI_MIME_TYPE = 'audio/midi'

# C major triad, used when analysis finds no usable peaks
FALLBACK_TRIAD = (60, 64, 67)

# C major scale, used when decoding or analysis fails outright
FALLBACK_SCALE = (60, 62, 64, 65, 67, 69, 71, 72)


# ============================================================================
# AUDIO UTILITIES (Pure Functions)
# ============================================================================

def ensure_mono(audio: np.ndarray) -> np.ndarray:
    """
    Convert multi-channel audio to mono by averaging channels.

    Args:
        audio: Audio signal, shape (n,) or (n, channels)

    Returns:
        Mono audio signal
    """
    if audio.ndim == 2:
        return np.mean(audio, axis=1)
    return audio


def clip_to_duration(samples: np.ndarray, sr: int, max_duration: Optional[float]) -> np.ndarray:
    """
    Keep only the first max_duration seconds of a signal.

    Args:
        samples: Mono audio signal
        sr: Sample rate
        max_duration: Seconds to keep (None or <= 0 keeps everything)

    Returns:
        View of samples limited to max_duration
    """
    if max_duration is None or max_duration <= 0:
        return samples
    max_samples = int(max_duration * sr)
    return samples[:max_samples]


# ============================================================================
# NOTE MAPPING (Pure Functions)
# ============================================================================

def clamp_midi_byte(value: float) -> int:
    """Clamp a MIDI data byte (pitch or velocity) to [0, 127]."""
    return int(min(127, max(0, value)))


def clamp_pitch(value: float) -> int:
    """Clamp a pitch to the MIDI range [0, 127]."""
    return clamp_midi_byte(value)


def peak_to_pitch(peak: float, base_pitch: int = 60, pitch_span: int = 24) -> int:
    """
    Map one peak amplitude to a MIDI pitch.

    pitch = clamp(base_pitch + floor(peak * pitch_span), 0, 127)

    NaN is treated as silence. Infinite peaks clamp to the range ends.
    """
    if math.isnan(peak):
        peak = 0.0
    raw = base_pitch + peak * pitch_span
    # clamp first so floor never sees an infinity
    bounded = min(127.0, max(0.0, raw))
    return clamp_pitch(math.floor(bounded))


def map_to_pitches(
    peaks: Iterable[float],
    base_pitch: int = 60,
    pitch_span: int = 24
) -> List[int]:
    """
    Map peak amplitudes to MIDI pitches, one pitch per peak.

    A peak of 0.0 lands on middle C and 1.0 two octaves above it.
    An empty input returns the C major triad so the encoder is never
    handed an empty sequence.

    Args:
        peaks: Peak amplitudes in temporal order
        base_pitch: Pitch for a peak of 0.0
        pitch_span: Semitones covered by peaks from 0.0 to 1.0

    Returns:
        List of pitches in [0, 127]
    """
    pitches = [peak_to_pitch(float(p), base_pitch, pitch_span) for p in peaks]
    if not pitches:
        return list(FALLBACK_TRIAD)
    return pitches


def to_pitch_events(
    pitches: Iterable[int],
    velocity_on: int = 64,
    velocity_off: int = 0,
    duration_ticks: int = 96
) -> List[PitchEvent]:
    """Wrap pitches in PitchEvents carrying the fixed note parameters."""
    return [
        PitchEvent(
            pitch=clamp_pitch(p),
            velocity_on=clamp_midi_byte(velocity_on),
            velocity_off=clamp_midi_byte(velocity_off),
            duration_ticks=duration_ticks
        )
        for p in pitches
    ]


# ============================================================================
# FILE NAMES (Pure Functions)
# ============================================================================

def derive_output_name(file_name: str, suffix: str = "_converted.mid") -> str:
    """
    Derive the MIDI file name from the source audio file name.

    The last extension is replaced by suffix:
    "take 1.mp3" -> "take 1_converted.mid"

    Args:
        file_name: Original file name (directories are dropped)
        suffix: Text appended to the extension-less base name

    Returns:
        Output file name
    """
    name = PurePath(file_name.replace('\\', '/')).name
    base = re.sub(r'\.[^/.]+$', '', name)
    return f"{base}{suffix}"


def is_audio_file(file_name: Optional[str], mime_type: Optional[str] = None) -> bool:
    """
    Check whether a file should be offered for conversion.

    Accepts .mp3, .wav, .m4a and .aac (any case) or any audio/* MIME type.
    """
    if mime_type and mime_type.lower().startswith('audio/'):
        return True
    if not file_name:
        return False
    return file_name.lower().endswith(ACCEPTED_EXTENSIONS)
