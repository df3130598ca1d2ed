"""
Exception types for audio-to-MIDI conversion.

DecodeError and AnalysisDegenerate are recovered by the orchestrator and
reported through ConversionResult; EncodingError is a contract violation
and always propagates.
"""

from enum import Enum


__all__ = [
    'ErrorKind',
    'ConversionError',
    'DecodeError',
    'AnalysisDegenerate',
    'EncodingError',
]


class ErrorKind(Enum):
    """Reason a conversion fell back to a fixed note sequence"""
    DECODE_ERROR = "decode_error"
    ANALYSIS_DEGENERATE = "analysis_degenerate"
    ANALYSIS_ERROR = "analysis_error"


class ConversionError(Exception):
    """Base class for conversion pipeline errors."""


class DecodeError(ConversionError):
    """The decoder could not turn the input bytes into samples."""


class AnalysisDegenerate(ConversionError):
    """Peak extraction produced no usable peaks."""


class EncodingError(ConversionError):
    """MIDI serialization was handed input that breaks its contract."""
