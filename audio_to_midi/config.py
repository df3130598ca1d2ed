"""
Configuration and data structures for audio-to-MIDI conversion.

This module provides configuration loading and the data classes passed
between the stages of the conversion pipeline.

Architecture: Part of the Imperative Shell
- Handles I/O (YAML file loading)
- Provides data structures for coordination
"""

from pathlib import Path
from typing import Dict, Optional
from dataclasses import dataclass
import numpy as np
import yaml


__all__ = [
    'load_config',
    'ConversionSettings',
    'SampleBuffer',
    'PitchEvent',
    'DEFAULT_CONFIG_PATH',
]


DEFAULT_CONFIG_PATH = Path(__file__).parent / 'audioconfig.yaml'


def load_config(config_path: Optional[Path] = None) -> Dict:
    """
    Load conversion configuration from YAML file.

    Args:
        config_path: Path to config file (defaults to the audioconfig.yaml
                     shipped with the package)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    return config or {}


@dataclass
class ConversionSettings:
    """Tunable parameters for one conversion run."""
    max_windows: int = 16
    peak_threshold: float = 0.1
    max_duration: float = 30.0      # seconds analyzed before clipping
    max_events: int = 12
    ticks_per_quarter: int = 96
    note_ticks: int = 96
    velocity_on: int = 64
    velocity_off: int = 0
    base_pitch: int = 60            # middle C
    pitch_span: int = 24            # two octaves
    output_suffix: str = "_converted.mid"

    @classmethod
    def from_config(cls, config: Optional[Dict]) -> 'ConversionSettings':
        """
        Build settings from a config dictionary as returned by load_config.

        Missing sections or keys keep their defaults.
        """
        config = config or {}
        analysis = config.get('analysis', {}) or {}
        midi = config.get('midi', {}) or {}
        output = config.get('output', {}) or {}
        defaults = cls()

        return cls(
            max_windows=int(analysis.get('max_windows', defaults.max_windows)),
            peak_threshold=float(analysis.get('peak_threshold', defaults.peak_threshold)),
            max_duration=float(analysis.get('max_duration', defaults.max_duration)),
            max_events=int(midi.get('max_events', defaults.max_events)),
            ticks_per_quarter=int(midi.get('ticks_per_quarter', defaults.ticks_per_quarter)),
            note_ticks=int(midi.get('note_ticks', defaults.note_ticks)),
            velocity_on=int(midi.get('velocity_on', defaults.velocity_on)),
            velocity_off=int(midi.get('velocity_off', defaults.velocity_off)),
            base_pitch=int(midi.get('base_pitch', defaults.base_pitch)),
            pitch_span=int(midi.get('pitch_span', defaults.pitch_span)),
            output_suffix=str(output.get('suffix', defaults.output_suffix)),
        )


@dataclass
class SampleBuffer:
    """
    Decoded mono audio signal.

    Attributes:
        sample_rate: Samples per second (Hz)
        duration_seconds: Length of the signal in seconds
        samples: 1-D array of amplitudes, nominally in [-1.0, 1.0]
    """
    sample_rate: int
    duration_seconds: float
    samples: np.ndarray

    @classmethod
    def from_samples(cls, samples, sample_rate: int) -> 'SampleBuffer':
        """Wrap a sample array, deriving the duration from its length."""
        samples = np.asarray(samples, dtype=np.float32)
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        return cls(
            sample_rate=int(sample_rate),
            duration_seconds=len(samples) / float(sample_rate),
            samples=samples,
        )

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class PitchEvent:
    """One note pair written to the MIDI track."""
    pitch: int
    velocity_on: int = 64
    velocity_off: int = 0
    duration_ticks: int = 96    # one quarter note at 96 PPQ
