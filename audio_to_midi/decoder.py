"""
Audio decoding for audio-to-MIDI conversion.

The orchestrator only depends on the Decoder protocol. SoundfileDecoder is
the implementation used by the CLI and the web UI:

1. libsndfile (via soundfile) reads WAV/FLAC/OGG and, on libsndfile >= 1.1, MP3
   straight from memory
2. anything libsndfile rejects (M4A/AAC, older MP3 builds) is handed to
   librosa.load, which goes through audioread/ffmpeg from a temporary file

Decoding is blocking I/O, so decode() runs it in a worker thread.
"""

import asyncio
import io
import logging
import os
import tempfile
from typing import Protocol

import librosa
import numpy as np
import soundfile as sf

from .config import SampleBuffer
from .errors import DecodeError
from .helpers import ensure_mono


__all__ = [
    'Decoder',
    'SoundfileDecoder',
]

logger = logging.getLogger(__name__)


class Decoder(Protocol):
    """Anything that can turn encoded audio bytes into a SampleBuffer."""

    async def decode(self, data: bytes) -> SampleBuffer:
        ...


class SoundfileDecoder:
    """
    Decode audio bytes with soundfile, falling back to librosa.

    Args:
        use_librosa_fallback: Try librosa/audioread when libsndfile can't
                              read the data
    """

    def __init__(self, use_librosa_fallback: bool = True):
        self.use_librosa_fallback = use_librosa_fallback

    async def decode(self, data: bytes) -> SampleBuffer:
        return await asyncio.to_thread(self.decode_bytes, data)

    def decode_bytes(self, data: bytes) -> SampleBuffer:
        """
        Decode synchronously.

        Raises:
            DecodeError: If no backend can read the data or it holds no samples
        """
        if not data:
            raise DecodeError("No audio data provided")

        try:
            audio, sr = sf.read(io.BytesIO(data), dtype='float32', always_2d=False)
            logger.debug("Decoded %d bytes with libsndfile at %d Hz", len(data), sr)
        except RuntimeError as e:
            if not self.use_librosa_fallback:
                raise DecodeError(f"Unsupported audio data: {e}") from e
            logger.debug("libsndfile could not read input (%s), trying librosa", e)
            audio, sr = self._decode_with_librosa(data)

        audio = ensure_mono(np.asarray(audio, dtype=np.float32))
        if audio.size == 0:
            raise DecodeError("Decoded audio contains no samples")

        return SampleBuffer.from_samples(audio, sr)

    def _decode_with_librosa(self, data: bytes):
        fd, temp_path = tempfile.mkstemp(suffix='.audio')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            audio, sr = librosa.load(temp_path, sr=None, mono=True)
        except Exception as e:
            raise DecodeError(f"Could not decode audio: {e}") from e
        finally:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
        return audio, int(sr)
