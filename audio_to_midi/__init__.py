"""
Audio to MIDI conversion package.

This package turns a recorded audio file into a short single-track MIDI file
by mapping windowed amplitude peaks to pitches.
"""

import logging

from .config import load_config, ConversionSettings, SampleBuffer, PitchEvent
from .errors import ErrorKind, ConversionError, DecodeError, AnalysisDegenerate, EncodingError
from .detection import extract_peaks
from .helpers import map_to_pitches, derive_output_name, is_audio_file
from .midi import encode_midi, encode_variable_length, read_midi_notes
from .decoder import Decoder, SoundfileDecoder
from .processor import (
    ConversionState,
    ProgressEvent,
    MidiArtifact,
    ConversionResult,
    ConversionOrchestrator,
    run_conversion,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'load_config',
    'ConversionSettings',
    'SampleBuffer',
    'PitchEvent',
    'ErrorKind',
    'ConversionError',
    'DecodeError',
    'AnalysisDegenerate',
    'EncodingError',
    'extract_peaks',
    'map_to_pitches',
    'derive_output_name',
    'is_audio_file',
    'encode_midi',
    'encode_variable_length',
    'read_midi_notes',
    'Decoder',
    'SoundfileDecoder',
    'ConversionState',
    'ProgressEvent',
    'MidiArtifact',
    'ConversionResult',
    'ConversionOrchestrator',
    'run_conversion',
]
