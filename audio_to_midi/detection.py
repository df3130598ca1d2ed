"""
Amplitude peak detection for audio-to-MIDI conversion.

The signal is cut into equal, non-overlapping windows and each window
contributes its absolute peak. Windows are taken greedily from the left:
once max_windows peaks above the threshold are found the scan stops,
even if louder windows follow. The result is an approximation of
"where are the loud parts", not a global top-k peak search.
"""

from dataclasses import dataclass
from typing import Iterator, List

import numpy as np

from .config import SampleBuffer
from .errors import AnalysisDegenerate


__all__ = [
    'PeakWindow',
    'window_size_for',
    'iter_peak_windows',
    'extract_peaks',
    'require_peaks',
]


@dataclass(frozen=True)
class PeakWindow:
    """One analysis window and its absolute peak amplitude."""
    start_index: int
    end_index: int          # exclusive
    peak_amplitude: float


def window_size_for(sample_count: int, max_windows: int) -> int:
    """Window length in samples: max(1, floor(sample_count / max_windows))."""
    if max_windows <= 0:
        raise ValueError(f"max_windows must be positive, got {max_windows}")
    return max(1, sample_count // max_windows)


def iter_peak_windows(samples: np.ndarray, window_size: int) -> Iterator[PeakWindow]:
    """
    Yield consecutive windows of samples with their absolute peak.

    The final window may be shorter than window_size.
    """
    total = len(samples)
    for start in range(0, total, window_size):
        end = min(start + window_size, total)
        peak = float(np.max(np.abs(samples[start:end])))
        yield PeakWindow(start_index=start, end_index=end, peak_amplitude=peak)


def extract_peaks(
    buffer: SampleBuffer,
    max_windows: int = 16,
    threshold: float = 0.1
) -> List[float]:
    """
    Extract up to max_windows peak amplitudes in temporal order.

    Args:
        buffer: Decoded mono audio
        max_windows: Number of windows the buffer is divided into, and the
                     maximum number of peaks returned
        threshold: Peaks must be strictly greater than this to be kept

    Returns:
        List of peak amplitudes (possibly empty)
    """
    samples = np.asarray(buffer.samples)
    window_size = window_size_for(len(samples), max_windows)

    peaks = []
    if len(samples) == 0:
        return peaks

    for window in iter_peak_windows(samples, window_size):
        if window.peak_amplitude > threshold:
            peaks.append(window.peak_amplitude)
            if len(peaks) >= max_windows:
                break

    return peaks


def require_peaks(peaks: List[float]) -> List[float]:
    """Return peaks unchanged, raising AnalysisDegenerate if there are none."""
    if not peaks:
        raise AnalysisDegenerate("No window rose above the peak threshold")
    return peaks
