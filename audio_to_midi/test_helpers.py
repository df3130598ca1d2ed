"""
Tests for pure helper functions (functional core).

These functions have no side effects and are easy to test.
"""

import math

import numpy as np
import pytest

from audio_to_midi.config import PitchEvent
from audio_to_midi.helpers import (
    FALLBACK_TRIAD,
    ensure_mono,
    clip_to_duration,
    clamp_midi_byte,
    clamp_pitch,
    peak_to_pitch,
    map_to_pitches,
    to_pitch_events,
    derive_output_name,
    is_audio_file,
)


class TestEnsureMono:
    """Test audio channel handling."""

    def test_mono_unchanged(self):
        mono = np.array([1.0, 2.0, 3.0])
        np.testing.assert_array_equal(ensure_mono(mono), mono)

    def test_stereo_to_mono(self):
        """Stereo to mono conversion averages channels."""
        stereo = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
        np.testing.assert_array_almost_equal(ensure_mono(stereo), [1.5, 3.5, 5.5])


class TestClipToDuration:
    """Test duration limiting."""

    def test_clips_long_signal(self):
        samples = np.arange(10)
        assert len(clip_to_duration(samples, sr=2, max_duration=3.0)) == 6

    def test_short_signal_unchanged(self):
        samples = np.arange(4)
        assert len(clip_to_duration(samples, sr=2, max_duration=3.0)) == 4

    def test_no_limit(self):
        samples = np.arange(10)
        assert len(clip_to_duration(samples, sr=2, max_duration=None)) == 10
        assert len(clip_to_duration(samples, sr=2, max_duration=0)) == 10


class TestPitchMapping:
    """Test peak amplitude to pitch mapping."""

    def test_empty_returns_triad(self):
        assert map_to_pitches([]) == [60, 64, 67]
        assert tuple(map_to_pitches([])) == FALLBACK_TRIAD

    @pytest.mark.parametrize('peak, pitch', [
        (0.0, 60),
        (0.2, 64),
        (0.5, 72),
        (0.99, 83),
        (1.0, 84),
    ])
    def test_linear_mapping(self, peak, pitch):
        assert peak_to_pitch(peak) == pitch

    def test_one_pitch_per_peak(self):
        assert map_to_pitches([0.5, 0.0, 1.0]) == [72, 60, 84]

    def test_out_of_range_peaks_clamped(self):
        assert map_to_pitches([-10.0, 10.0]) == [0, 127]

    def test_never_leaves_midi_range(self):
        peaks = [-1e9, -3.0, -0.1, 0.0, 0.3, 1.0, 2.7, 1e9, math.inf, -math.inf, math.nan]
        pitches = map_to_pitches(peaks)
        assert len(pitches) == len(peaks)
        assert all(0 <= p <= 127 for p in pitches)
        assert all(isinstance(p, int) for p in pitches)

    def test_nan_is_silence(self):
        assert peak_to_pitch(math.nan) == 60

    def test_numpy_peaks(self):
        assert map_to_pitches(np.array([0.5], dtype=np.float32)) == [72]

    def test_custom_range(self):
        assert map_to_pitches([0.5], base_pitch=48, pitch_span=12) == [54]

    def test_clamp_pitch(self):
        assert clamp_pitch(-1) == 0
        assert clamp_pitch(64) == 64
        assert clamp_pitch(300) == 127


class TestPitchEvents:
    """Test PitchEvent construction."""

    def test_fixed_note_parameters(self):
        events = to_pitch_events([60, 200])
        assert events == [PitchEvent(60, 64, 0, 96), PitchEvent(127, 64, 0, 96)]

    def test_velocities_clamped(self):
        events = to_pitch_events([60], velocity_on=200, velocity_off=-5, duration_ticks=48)
        assert events == [PitchEvent(60, 127, 0, 48)]

    def test_clamp_midi_byte(self):
        assert clamp_midi_byte(-3) == 0
        assert clamp_midi_byte(100) == 100
        assert clamp_midi_byte(128) == 127


class TestOutputName:
    """Test output file naming."""

    @pytest.mark.parametrize('source, expected', [
        ('song.mp3', 'song_converted.mid'),
        ('Take 1.WAV', 'Take 1_converted.mid'),
        ('my.song.m4a', 'my.song_converted.mid'),
        ('noextension', 'noextension_converted.mid'),
        ('uploads/voice.aac', 'voice_converted.mid'),
        ('C:\\music\\voice.aac', 'voice_converted.mid'),
    ])
    def test_extension_replaced(self, source, expected):
        assert derive_output_name(source) == expected

    def test_custom_suffix(self):
        assert derive_output_name('song.mp3', '.mid') == 'song.mid'


class TestIsAudioFile:
    """Test upload gating."""

    @pytest.mark.parametrize('name', ['a.mp3', 'b.wav', 'c.m4a', 'd.aac', 'LOUD.MP3'])
    def test_accepted_extensions(self, name):
        assert is_audio_file(name)

    @pytest.mark.parametrize('name', ['a.flac', 'b.txt', 'mp3', 'c.mid'])
    def test_rejected_extensions(self, name):
        assert not is_audio_file(name)

    def test_audio_mime_type_accepted(self):
        assert is_audio_file('recording.webm', 'audio/webm')
        assert is_audio_file(None, 'AUDIO/OGG')

    def test_other_mime_type_falls_back_to_extension(self):
        assert not is_audio_file('notes.txt', 'text/plain')
        assert is_audio_file('clip.wav', 'application/octet-stream')

    def test_nothing_given(self):
        assert not is_audio_file(None)
        assert not is_audio_file('')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
