"""
Conversion Processing Module

Runs the audio-to-MIDI pipeline for one file:

    decode -> extract peaks -> map to pitches -> encode MIDI

ConversionOrchestrator owns the conversion state and reports every stage
change to an observer. Decode and analysis failures never reach the
caller: they are replaced by a fixed note sequence and flagged on the
returned ConversionResult. Only an encoding contract violation fails
the conversion.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from .config import ConversionSettings, SampleBuffer
from .decoder import Decoder, SoundfileDecoder
from .detection import extract_peaks, require_peaks
from .errors import AnalysisDegenerate, EncodingError, ErrorKind
from .helpers import (
    FALLBACK_SCALE,
    MIDI_MIME_TYPE,
    clip_to_duration,
    derive_output_name,
    map_to_pitches,
)
from .midi import encode_midi

__all__ = [
    'ConversionState',
    'ProgressEvent',
    'MidiArtifact',
    'ConversionResult',
    'ConversionOrchestrator',
    'print_progress',
    'run_conversion',
]

logger = logging.getLogger(__name__)


class ConversionState(Enum):
    """Conversion lifecycle stage"""
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    TRANSCRIBING = "transcribing"
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"


STAGE_PROGRESS = {
    ConversionState.IDLE: 0,
    ConversionState.UPLOADING: 20,
    ConversionState.PROCESSING: 40,
    ConversionState.TRANSCRIBING: 70,
    ConversionState.GENERATING: 90,
    ConversionState.COMPLETE: 100,
}

TERMINAL_STATES = (ConversionState.COMPLETE, ConversionState.FAILED)

CONFIDENCE_TRANSCRIBED = 0.85
CONFIDENCE_FALLBACK = 0.0


@dataclass(frozen=True)
class ProgressEvent:
    """Stage change reported to observers"""
    stage: ConversionState
    progress: int  # 0-100
    message: str


@dataclass
class MidiArtifact:
    """Encoded MIDI file ready to be saved or served."""
    data: bytes
    file_name: str
    mime_type: str = MIDI_MIME_TYPE

    def __len__(self) -> int:
        return len(self.data)


@dataclass
class ConversionResult:
    """
    Outcome of one conversion.

    Attributes:
        artifact: The MIDI file
        used_fallback: True if the notes come from a fixed sequence rather
                       than the audio
        reason: Why the fallback was used (None for a real transcription)
        confidence: Rough confidence in the notes (0-1)
        processing_time: Wall-clock seconds spent converting
        note_count: Number of note pairs in the file
    """
    artifact: MidiArtifact
    used_fallback: bool = False
    reason: Optional[ErrorKind] = None
    confidence: float = CONFIDENCE_TRANSCRIBED
    processing_time: float = 0.0
    note_count: int = 0

    def to_dict(self) -> dict:
        """Summary for API responses (the MIDI bytes are left out)"""
        return {
            'file_name': self.artifact.file_name,
            'mime_type': self.artifact.mime_type,
            'size': len(self.artifact.data),
            'used_fallback': self.used_fallback,
            'reason': self.reason.value if self.reason else None,
            'confidence': self.confidence,
            'processing_time': round(self.processing_time, 3),
            'note_count': self.note_count,
        }


ProgressObserver = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class ConversionOrchestrator:
    """
    Drives one audio file through the conversion pipeline.

    One conversion at a time per instance; callers serialize concurrent
    requests themselves (the web UI does it through its job queue).

    Args:
        decoder: Audio decoder (defaults to SoundfileDecoder)
        settings: Pipeline parameters (defaults to ConversionSettings())
        observer: Called with a ProgressEvent on every stage change; may be
                  a plain function or a coroutine function
    """

    def __init__(
        self,
        decoder: Optional[Decoder] = None,
        settings: Optional[ConversionSettings] = None,
        observer: Optional[ProgressObserver] = None
    ):
        self.decoder = decoder if decoder is not None else SoundfileDecoder()
        self.settings = settings if settings is not None else ConversionSettings()
        self.observer = observer
        self._state = ConversionState.IDLE
        self._converting = False

    @property
    def state(self) -> ConversionState:
        return self._state

    @property
    def is_converting(self) -> bool:
        return self._converting

    def start(self, file_bytes: bytes, file_name: str) -> 'asyncio.Task[ConversionResult]':
        """
        Schedule convert() on the running event loop.

        Cancelling the returned task cancels the in-flight decode as well.
        """
        return asyncio.get_running_loop().create_task(self.convert(file_bytes, file_name))

    async def convert(self, file_bytes: bytes, file_name: str) -> ConversionResult:
        """
        Convert encoded audio into a MIDI artifact.

        Args:
            file_bytes: Encoded audio file contents
            file_name: Original file name, used for the output name

        Returns:
            ConversionResult (always holds a valid MIDI file)

        Raises:
            EncodingError: If the MIDI encoder rejects its input
            asyncio.CancelledError: If the conversion task is cancelled
        """
        self._converting = True
        self._state = ConversionState.IDLE
        started = time.perf_counter()
        try:
            result = await self._run(file_bytes, file_name)
        finally:
            self._converting = False
        result.processing_time = time.perf_counter() - started
        return result

    async def _run(self, file_bytes: bytes, file_name: str) -> ConversionResult:
        settings = self.settings
        reason = None
        pitches = None

        # Step 1: Decode
        await self._advance(ConversionState.UPLOADING, 'Uploading audio file...')
        buffer = None
        try:
            buffer = await self.decoder.decode(file_bytes)
        except Exception as e:
            logger.warning("Decoding %s failed, using fallback notes: %s", file_name, e)
            reason = ErrorKind.DECODE_ERROR

        # Step 2: Extract peaks
        peaks = None
        if buffer is None:
            await self._advance(ConversionState.PROCESSING, 'Skipping analysis of unreadable audio...')
        else:
            await self._advance(ConversionState.PROCESSING, 'Analyzing audio content...')
            try:
                peaks = self._analyze(buffer)
            except Exception as e:
                logger.warning("Analysis of %s failed, using fallback notes: %s", file_name, e)
                reason = ErrorKind.ANALYSIS_ERROR
            buffer = None

        # Step 3: Map peaks to pitches
        if peaks is None:
            await self._advance(ConversionState.TRANSCRIBING, 'Using fallback notes...')
        else:
            await self._advance(ConversionState.TRANSCRIBING, 'Transcribing musical notes...')
            try:
                require_peaks(peaks)
            except AnalysisDegenerate as e:
                logger.info("%s: %s, using fallback triad", file_name, e)
                reason = ErrorKind.ANALYSIS_DEGENERATE
            try:
                pitches = map_to_pitches(peaks, settings.base_pitch, settings.pitch_span)
            except Exception as e:
                logger.warning("Pitch mapping for %s failed, using fallback notes: %s", file_name, e)
                reason = ErrorKind.ANALYSIS_ERROR

        if pitches is None:
            pitches = list(FALLBACK_SCALE)

        # Step 4: Encode
        if reason is None:
            await self._advance(ConversionState.GENERATING, 'Generating MIDI file...')
        else:
            await self._advance(ConversionState.GENERATING, 'Generating fallback MIDI file...')
        try:
            data = encode_midi(
                pitches,
                max_events=settings.max_events,
                ticks_per_quarter=settings.ticks_per_quarter,
                note_ticks=settings.note_ticks,
                velocity_on=settings.velocity_on,
                velocity_off=settings.velocity_off
            )
        except EncodingError as e:
            logger.error("MIDI encoding failed for %s: %s", file_name, e)
            await self._fail('Failed to generate MIDI file')
            raise

        # Step 5: Done
        artifact = MidiArtifact(
            data=data,
            file_name=derive_output_name(file_name, settings.output_suffix)
        )
        await self._advance(ConversionState.COMPLETE, 'Conversion completed!')

        return ConversionResult(
            artifact=artifact,
            used_fallback=reason is not None,
            reason=reason,
            confidence=CONFIDENCE_FALLBACK if reason is not None else CONFIDENCE_TRANSCRIBED,
            note_count=min(len(pitches), settings.max_events)
        )

    def _analyze(self, buffer: SampleBuffer) -> List[float]:
        settings = self.settings
        samples = clip_to_duration(buffer.samples, buffer.sample_rate, settings.max_duration)
        if len(samples) < len(buffer.samples):
            logger.info(
                "Clipped %.1fs of audio to the first %.1fs",
                buffer.duration_seconds, settings.max_duration
            )
        clipped = SampleBuffer.from_samples(samples, buffer.sample_rate)
        peaks = extract_peaks(clipped, settings.max_windows, settings.peak_threshold)
        logger.debug("Found %d peaks above %.2f", len(peaks), settings.peak_threshold)
        return peaks

    async def _advance(self, stage: ConversionState, message: str):
        if self._state in TERMINAL_STATES:
            raise RuntimeError(f"Conversion already {self._state.value}")
        self._state = stage
        await self._notify(ProgressEvent(stage, STAGE_PROGRESS[stage], message))

    async def _fail(self, message: str):
        progress = STAGE_PROGRESS.get(self._state, 0)
        self._state = ConversionState.FAILED
        await self._notify(ProgressEvent(ConversionState.FAILED, progress, message))

    async def _notify(self, event: ProgressEvent):
        if self.observer is None:
            return
        result = self.observer(event)
        if inspect.isawaitable(result):
            await result


def print_progress(event: ProgressEvent):
    """
    Observer that prints progress in the format the job queue parses.

    Emits "Status Update: <message>" and "Progress: N%" lines.
    """
    print(f"Status Update: {event.message}")
    print(f"Progress: {event.progress}%")


def run_conversion(
    file_bytes: bytes,
    file_name: str,
    settings: Optional[ConversionSettings] = None,
    decoder: Optional[Decoder] = None,
    observer: Optional[ProgressObserver] = print_progress
) -> ConversionResult:
    """Blocking wrapper around ConversionOrchestrator.convert for scripts and worker threads."""
    orchestrator = ConversionOrchestrator(decoder=decoder, settings=settings, observer=observer)
    return asyncio.run(orchestrator.convert(file_bytes, file_name))
