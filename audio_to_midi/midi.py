"""
MIDI File Operations Module

Serializes pitch sequences into single-track (Type 0) Standard MIDI Files
and reads them back for verification.

Writing is done byte-by-byte so the layout is exact:

    MThd 00 00 00 06 | 00 00 | 00 01 | 00 60
    MTrk <length:4>  | <delta> 90 nn 40 <delta> 80 nn 00 ... 00 FF 2F 00

Reading uses mido, which keeps the round-trip check independent of the writer.
"""

import io
import struct
from numbers import Integral
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import mido

from .errors import EncodingError
from .helpers import to_pitch_events


__all__ = [
    'encode_variable_length',
    'build_header_chunk',
    'build_track_chunk',
    'build_event_stream',
    'encode_midi',
    'write_midi_file',
    'read_midi_notes',
]


HEADER_ID = b'MThd'
TRACK_ID = b'MTrk'
FORMAT_SINGLE_TRACK = 0

NOTE_ON = 0x90
NOTE_OFF = 0x80
END_OF_TRACK = b'\xff\x2f\x00'

MAX_VARIABLE_LENGTH = 0x0FFFFFFF   # largest value a 4-byte VLQ can hold


def encode_variable_length(value: int) -> bytes:
    """
    Encode a non-negative integer as a MIDI variable-length quantity.

    Seven data bits per byte, most significant group first; every byte but
    the last has its high bit set.

        0x00      -> 00
        0x7F      -> 7F
        0x80      -> 81 00
        0x3FFF    -> FF 7F
        0x0FFFFFFF -> FF FF FF 7F

    Raises:
        EncodingError: If value is negative, not an integer or above 0x0FFFFFFF
    """
    if not isinstance(value, Integral) or isinstance(value, bool):
        raise EncodingError(f"Delta-time must be an integer, got {value!r}")
    value = int(value)
    if value < 0 or value > MAX_VARIABLE_LENGTH:
        raise EncodingError(f"Delta-time out of range: {value}")

    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def build_header_chunk(division: int = 96, num_tracks: int = 1) -> bytes:
    """Build the 14-byte MThd chunk for a Type 0 file."""
    if not 0 < division < 0x8000:
        raise EncodingError(f"Division must be in 1..32767 ticks, got {division}")
    return HEADER_ID + struct.pack('>IHHH', 6, FORMAT_SINGLE_TRACK, num_tracks, division)


def build_track_chunk(events: bytes) -> bytes:
    """Wrap an event stream in an MTrk chunk with its exact length."""
    if len(events) > 0xFFFFFFFF:
        raise EncodingError(f"Track too long: {len(events)} bytes")
    return TRACK_ID + struct.pack('>I', len(events)) + bytes(events)


def build_event_stream(
    pitches: Sequence[int],
    note_ticks: int = 96,
    velocity_on: int = 64,
    velocity_off: int = 0
) -> bytes:
    """
    Build the track event stream for a sequence of pitches.

    Each pitch becomes a PitchEvent: a note-on followed duration_ticks later
    by its note-off. Notes after the first start one note length after the
    previous note-off. The stream always ends with the end-of-track meta event.
    """
    events = to_pitch_events(
        pitches,
        velocity_on=velocity_on,
        velocity_off=velocity_off,
        duration_ticks=note_ticks
    )

    data = bytearray()
    for index, event in enumerate(events):
        delta = 0 if index == 0 else event.duration_ticks
        data += encode_variable_length(delta)
        data += bytes((NOTE_ON, event.pitch, event.velocity_on))
        data += encode_variable_length(event.duration_ticks)
        data += bytes((NOTE_OFF, event.pitch, event.velocity_off))

    data += encode_variable_length(0)
    data += END_OF_TRACK
    return bytes(data)


def encode_midi(
    pitches: Sequence[int],
    max_events: int = 12,
    ticks_per_quarter: int = 96,
    note_ticks: int = 96,
    velocity_on: int = 64,
    velocity_off: int = 0
) -> bytes:
    """
    Serialize pitches into a complete Type 0 MIDI file.

    Pure and deterministic: identical input gives identical bytes.

    Args:
        pitches: MIDI pitch numbers in playing order (clamped to 0-127)
        max_events: Only the first max_events pitches are written
        ticks_per_quarter: Header division
        note_ticks: Note length and gap between notes, in ticks
        velocity_on: Note-on velocity
        velocity_off: Note-off velocity

    Returns:
        MIDI file bytes

    Raises:
        EncodingError: If pitches is empty or holds non-integers, or
                       max_events is not positive
    """
    if max_events <= 0:
        raise EncodingError(f"max_events must be positive, got {max_events}")

    pitches = list(pitches)
    if not pitches:
        raise EncodingError("Cannot encode an empty pitch sequence")
    for pitch in pitches:
        if not isinstance(pitch, Integral) or isinstance(pitch, bool):
            raise EncodingError(f"Pitch must be an integer, got {pitch!r}")

    events = build_event_stream(
        pitches[:max_events],
        note_ticks=note_ticks,
        velocity_on=velocity_on,
        velocity_off=velocity_off
    )
    return build_header_chunk(ticks_per_quarter) + build_track_chunk(events)


def write_midi_file(data: bytes, output_path: Union[str, Path]) -> Path:
    """Write encoded MIDI bytes to disk, creating parent directories."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'wb') as f:
        f.write(data)
    return output_path


def read_midi_notes(source: Union[bytes, str, Path]) -> List[Tuple[int, int, int]]:
    """
    Read note pairs back from a MIDI file.

    Args:
        source: MIDI bytes or a path to a .mid file

    Returns:
        List of (pitch, note_on_velocity, note_off_velocity) in note-on order
    """
    if isinstance(source, (bytes, bytearray)):
        midi_file = mido.MidiFile(file=io.BytesIO(bytes(source)))
    else:
        midi_file = mido.MidiFile(str(source))

    notes = []
    open_notes = {}

    for track in midi_file.tracks:
        for msg in track:
            if msg.type == 'note_on' and msg.velocity > 0:
                open_notes.setdefault(msg.note, []).append(len(notes))
                notes.append([msg.note, msg.velocity, None])
            elif msg.type == 'note_off' or (msg.type == 'note_on' and msg.velocity == 0):
                pending = open_notes.get(msg.note)
                if pending:
                    notes[pending.pop(0)][2] = msg.velocity

    return [tuple(n) for n in notes]
