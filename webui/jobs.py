"""
Job Queue System

Runs audio-to-MIDI conversions in background threads with status tracking
and progress updates.

Architecture: Functional Core, Imperative Shell
- Pure functions for job state management
- Imperative shell handles threading and I/O
"""

import uuid
import logging
import threading
import time
import sys
import io
from datetime import datetime
from typing import Dict, Callable, Any, Optional, List
from dataclasses import dataclass, field
from enum import Enum
import traceback

from audio_to_midi.processor import ConversionResult, MidiArtifact


# Records from this logger are copied into the logs of the job that emitted them
LIBRARY_LOGGER = 'audio_to_midi'


class JobStatus(Enum):
    """Job execution status"""
    QUEUED = "Queued"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


FINISHED_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class JobLog:
    """Single log entry from job execution"""
    timestamp: datetime
    level: str  # 'info', 'warning', 'error'
    message: str


@dataclass
class Job:
    """
    Represents a single job in the queue.

    Attributes:
        id: Unique job identifier
        operation: Operation name (e.g., 'convert')
        source_name: Name of the uploaded file the job works on
        status: Current job status
        status_detail: Detailed status message (e.g., 'Transcribing musical notes...')
        progress: Progress percentage (0-100)
        logs: List of log entries
        result: JSON-safe result summary (if completed)
        artifact: Generated MIDI file (if completed)
        error: Error message (if failed)
        created_at: Job creation timestamp
        started_at: Job start timestamp
        completed_at: Job completion timestamp
    """
    id: str
    operation: str
    source_name: Optional[str] = None
    status: JobStatus = JobStatus.QUEUED
    status_detail: str = ""
    progress: int = 0
    logs: List[JobLog] = field(default_factory=list)
    result: Optional[Any] = None
    artifact: Optional[MidiArtifact] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def add_log(self, level: str, message: str):
        """Add a log entry to this job"""
        self.logs.append(JobLog(
            timestamp=datetime.now(),
            level=level,
            message=message
        ))

    def to_dict(self) -> dict:
        """Convert job to dictionary for API responses"""
        return {
            'id': self.id,
            'operation': self.operation,
            'source_name': self.source_name,
            'status': self.status.value,
            'status_detail': self.status_detail,
            'progress': self.progress,
            'logs': [
                {
                    'timestamp': log.timestamp.isoformat(),
                    'level': log.level,
                    'message': log.message
                }
                for log in self.logs
            ],
            'result': self.result,
            'has_artifact': self.artifact is not None,
            'error': self.error,
            'created_at': self.created_at.isoformat(),
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None
        }


def _release_work(job: Job):
    """Drop the function and arguments a job was submitted with."""
    job._func = None
    job._kwargs = {}


def parse_progress_line(line: str) -> Optional[int]:
    """
    Extract a percentage from a "Progress: N%" line.

    Returns:
        Progress clamped to 0-100, or None if the line has no progress
    """
    if 'Progress:' not in line or '%' not in line:
        return None
    try:
        progress_str = line.split('Progress:')[1].split('%')[0].strip()
        return max(0, min(100, int(float(progress_str))))
    except (ValueError, IndexError):
        return None


def parse_status_line(line: str) -> Optional[str]:
    """Extract the message from a "Status Update: <msg>" line."""
    if 'Status Update: ' not in line:
        return None
    return line.split('Status Update: ')[1].strip()


class JobLogHandler(logging.Handler):
    """Logging handler that adds records from one thread to a job's logs"""
    def __init__(self, job: Job, level: int = logging.INFO):
        super().__init__(level=level)
        self.job = job
        self.thread_id = threading.get_ident()

    def emit(self, record: logging.LogRecord):
        if record.thread != self.thread_id:
            return
        if record.levelno >= logging.ERROR:
            level = 'error'
        elif record.levelno >= logging.WARNING:
            level = 'warning'
        else:
            level = 'info'
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        self.job.add_log(level, message)


class StdoutCapture:
    """
    Context manager to capture stdout/stderr and add to job logs.

    Log records from the audio_to_midi package emitted by the current
    thread are added to the job logs as well.

    Usage:
        with StdoutCapture(job):
            print("This will be captured")  # Added to job.logs
    """
    def __init__(self, job: Job):
        self.job = job
        self.stdout_buffer = io.StringIO()
        self.stderr_buffer = io.StringIO()
        self.old_stdout = None
        self.old_stderr = None
        self.log_handler = None

    def __enter__(self):
        self.log_handler = JobLogHandler(self.job)
        logging.getLogger(LIBRARY_LOGGER).addHandler(self.log_handler)

        self.old_stdout = sys.stdout
        self.old_stderr = sys.stderr

        # Write to both job logs and console
        sys.stdout = StdoutWrapper(self.stdout_buffer, self.job, 'info', self.old_stdout)
        sys.stderr = StdoutWrapper(self.stderr_buffer, self.job, 'error', self.old_stderr)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Flush any remaining output
        for stream, level in ((sys.stdout, 'info'), (sys.stderr, 'error')):
            if isinstance(stream, StdoutWrapper):
                remaining = stream.buffer.getvalue()
                for line in remaining.strip().split('\n'):
                    if line.strip():
                        self.job.add_log(level, line.strip())

        sys.stdout = self.old_stdout
        sys.stderr = self.old_stderr
        logging.getLogger(LIBRARY_LOGGER).removeHandler(self.log_handler)
        return False


class StdoutWrapper:
    """Wrapper for stdout/stderr that captures output line-by-line"""
    def __init__(self, buffer: io.StringIO, job: Job, level: str, original_stream=None):
        self.buffer = buffer
        self.job = job
        self.level = level
        self.original_stream = original_stream

    def write(self, text):
        """Write to buffer and flush complete lines to job logs"""
        if not text:
            return

        if self.original_stream:
            self.original_stream.write(text)
            self.original_stream.flush()

        self.buffer.write(text)

        if '\n' in text or '\r' in text:
            content = self.buffer.getvalue()
            lines = content.replace('\r', '\n').split('\n')

            for line in lines[:-1]:
                if not line.strip():
                    continue
                self.job.add_log(self.level, line.strip())

                progress = parse_progress_line(line)
                if progress is not None:
                    self.job.progress = progress

                status_msg = parse_status_line(line)
                if status_msg is not None:
                    self.job.status_detail = status_msg

            # Keep incomplete line in buffer
            self.buffer = io.StringIO()
            if lines[-1]:
                self.buffer.write(lines[-1])

    def flush(self):
        """Flush method for compatibility"""
        pass


class JobQueue:
    """
    Thread-safe job queue for managing asynchronous operations.

    Provides:
    - Job submission and execution
    - Status tracking
    - Real-time log streaming
    - Concurrent job limiting
    """

    def __init__(self, max_concurrent: int = 1):
        """
        Initialize job queue.

        Args:
            max_concurrent: Maximum number of jobs to run concurrently
        """
        self.max_concurrent = max_concurrent
        self.jobs: Dict[str, Job] = {}
        self.job_lock = threading.Lock()
        self.worker_threads: List[threading.Thread] = []
        self.running = False

    def start(self):
        """Start worker threads"""
        if self.running:
            return

        self.running = True
        for i in range(self.max_concurrent):
            thread = threading.Thread(target=self._worker, daemon=True, name=f'JobWorker-{i}')
            thread.start()
            self.worker_threads.append(thread)

    def stop(self):
        """Stop worker threads"""
        self.running = False
        for thread in self.worker_threads:
            thread.join(timeout=5)
        self.worker_threads.clear()

    def submit(
        self,
        operation: str,
        func: Callable,
        source_name: Optional[str] = None,
        **kwargs
    ) -> str:
        """
        Submit a new job to the queue.

        Args:
            operation: Operation name (e.g., 'convert')
            func: Function to execute
            source_name: Name of the file the job works on
            **kwargs: Arguments to pass to func

        Returns:
            Job ID
        """
        job_id = str(uuid.uuid4())
        job = Job(
            id=job_id,
            operation=operation,
            source_name=source_name
        )
        job.add_log('info', f'Job queued: {operation}')

        # Stored for the worker to execute
        job._func = func
        job._kwargs = kwargs

        with self.job_lock:
            self.jobs[job_id] = job

        return job_id

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get job by ID"""
        with self.job_lock:
            return self.jobs.get(job_id)

    def get_all_jobs(self) -> List[Job]:
        """Get all jobs"""
        with self.job_lock:
            return list(self.jobs.values())

    def cancel_job(self, job_id: str) -> bool:
        """
        Cancel a job.

        Note: This only marks the job as cancelled. If it's already running,
        the conversion finishes but its result is discarded.

        Args:
            job_id: Job ID to cancel

        Returns:
            True if job was cancelled, False if not found or already finished
        """
        job = self.get_job(job_id)
        if job is None:
            return False

        if job.status in FINISHED_STATUSES:
            return False

        with self.job_lock:
            if job.status == JobStatus.QUEUED:
                _release_work(job)
            job.status = JobStatus.CANCELLED
            job.completed_at = datetime.now()
            job.add_log('warning', 'Job cancelled by user')

        return True

    def run_job(self, job: Job):
        """Execute one job in the calling thread and record its outcome"""
        try:
            job.add_log('info', 'Executing operation...')

            with StdoutCapture(job):
                result = job._func(**job._kwargs)

            with self.job_lock:
                if job.status == JobStatus.CANCELLED:
                    job.add_log('warning', 'Job was cancelled, result discarded')
                    return
                if isinstance(result, ConversionResult):
                    job.artifact = result.artifact
                    job.result = result.to_dict()
                else:
                    job.result = result
                job.status = JobStatus.COMPLETED
                job.progress = 100
                job.completed_at = datetime.now()
                job.add_log('info', 'Job completed successfully')

        except Exception as e:
            error_msg = str(e)
            error_trace = traceback.format_exc()

            with self.job_lock:
                job.status = JobStatus.FAILED
                job.error = error_msg
                job.completed_at = datetime.now()
                job.add_log('error', f'Job failed: {error_msg}')
                job.add_log('error', f'Traceback:\n{error_trace}')

        finally:
            # Finished jobs keep only their result
            _release_work(job)

    def _worker(self):
        """Worker thread that processes jobs"""
        while self.running:
            job_to_run = None

            with self.job_lock:
                for job in self.jobs.values():
                    if job.status == JobStatus.QUEUED:
                        job.status = JobStatus.RUNNING
                        job.started_at = datetime.now()
                        job.add_log('info', f'Job started: {job.operation}')
                        job_to_run = job
                        break

            if job_to_run is None:
                # No jobs to run, sleep and check again
                time.sleep(0.5)
                continue

            self.run_job(job_to_run)


# Global job queue instance
_job_queue: Optional[JobQueue] = None


def get_job_queue(max_concurrent: int = 1) -> JobQueue:
    """Get the global job queue instance"""
    global _job_queue
    if _job_queue is None:
        _job_queue = JobQueue(max_concurrent=max_concurrent)
        _job_queue.start()
    return _job_queue


def shutdown_job_queue():
    """Shutdown the global job queue"""
    global _job_queue
    if _job_queue is not None:
        _job_queue.stop()
        _job_queue = None
