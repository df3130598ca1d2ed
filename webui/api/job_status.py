"""
Job Status API Endpoints

Provides job status tracking and Server-Sent Events for real-time updates.
"""

from flask import jsonify, Response, stream_with_context
import json
import time
from webui.api import jobs_bp
from webui.jobs import get_job_queue, JobStatus, FINISHED_STATUSES


@jobs_bp.route('/jobs', methods=['GET'])
def list_jobs():
    """
    GET /api/jobs

    List all jobs in the queue.

    Returns:
        200: List of all jobs
        500: Internal error

    Response format:
        {
            "jobs": [
                {
                    "id": "uuid-here",
                    "operation": "convert",
                    "source_name": "song.mp3",
                    "status": "Running",
                    "status_detail": "Analyzing audio content...",
                    "progress": 40,
                    "logs": [...],
                    "created_at": "2025-10-19T12:00:00",
                    ...
                },
                ...
            ]
        }
    """
    try:
        job_queue = get_job_queue()
        jobs = job_queue.get_all_jobs()

        return jsonify({
            'jobs': [job.to_dict() for job in jobs]
        }), 200

    except Exception as e:
        return jsonify({
            'error': 'Failed to list jobs',
            'message': str(e)
        }), 500


@jobs_bp.route('/jobs/<job_id>', methods=['GET'])
def get_job(job_id):
    """
    GET /api/jobs/:job_id

    Get status of a specific job.

    Args:
        job_id: Job ID

    Returns:
        200: Job details
        404: Job not found
        500: Internal error

    Response format:
        {
            "job": {
                "id": "uuid-here",
                "operation": "convert",
                "status": "Completed",
                "progress": 100,
                "logs": [...],
                "result": {
                    "file_name": "song_converted.mid",
                    "used_fallback": false,
                    "reason": null,
                    "note_count": 12,
                    ...
                },
                "has_artifact": true,
                "error": null,
                ...
            }
        }
    """
    try:
        job_queue = get_job_queue()
        job = job_queue.get_job(job_id)

        if job is None:
            return jsonify({
                'error': 'Job not found',
                'message': f'No job with ID {job_id}'
            }), 404

        return jsonify({
            'job': job.to_dict()
        }), 200

    except Exception as e:
        return jsonify({
            'error': 'Failed to get job',
            'message': str(e)
        }), 500


@jobs_bp.route('/jobs/<job_id>/cancel', methods=['POST'])
def cancel_job(job_id):
    """
    POST /api/jobs/:job_id/cancel

    Cancel a job.

    Note: If the job is already running, the conversion finishes but
    its result is discarded.

    Args:
        job_id: Job ID

    Returns:
        200: Job cancelled
        404: Job not found
        400: Job cannot be cancelled (already finished)
        500: Internal error
    """
    try:
        job_queue = get_job_queue()

        if job_queue.cancel_job(job_id):
            return jsonify({
                'message': 'Job cancelled',
                'job_id': job_id
            }), 200

        job = job_queue.get_job(job_id)
        if job is None:
            return jsonify({
                'error': 'Job not found',
                'message': f'No job with ID {job_id}'
            }), 404
        return jsonify({
            'error': 'Cannot cancel job',
            'message': f'Job is already {job.status.value}'
        }), 400

    except Exception as e:
        return jsonify({
            'error': 'Failed to cancel job',
            'message': str(e)
        }), 500


@jobs_bp.route('/jobs/<job_id>/stream', methods=['GET'])
def stream_job_status(job_id):
    """
    GET /api/jobs/:job_id/stream

    Stream job status updates using Server-Sent Events (SSE).

    Events are sent whenever the job status, progress or logs change.

    Args:
        job_id: Job ID

    Returns:
        200: SSE stream
        404: Job not found

    Event format:
        event: job_update
        data: {"id": "uuid", "status": "Running", "progress": 70, ...}

        event: job_complete
        data: {"id": "uuid", "status": "Completed", "result": {...}}

        event: job_error
        data: {"id": "uuid", "status": "Failed", "error": "..."}
    """
    job_queue = get_job_queue()
    job = job_queue.get_job(job_id)

    if job is None:
        return jsonify({
            'error': 'Job not found',
            'message': f'No job with ID {job_id}'
        }), 404

    def generate():
        """Generate SSE events for job updates"""
        last_state = None

        while True:
            job = job_queue.get_job(job_id)

            if job is None:
                yield 'event: job_error\n'
                yield f'data: {json.dumps({"error": "Job no longer exists"})}\n\n'
                break

            state = (job.status, job.progress, len(job.logs))
            if state != last_state:
                last_state = state
                job_data = job.to_dict()

                if job.status in FINISHED_STATUSES:
                    event_name = 'job_complete' if job.status == JobStatus.COMPLETED else 'job_error'
                    yield f'event: {event_name}\n'
                    yield f'data: {json.dumps(job_data)}\n\n'
                    break

                yield 'event: job_update\n'
                yield f'data: {json.dumps(job_data)}\n\n'

            # Poll every 500ms
            time.sleep(0.5)

    return Response(
        stream_with_context(generate()),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'X-Accel-Buffering': 'no'
        }
    )
