"""
Downloads API Endpoints

Serves the MIDI files produced by conversion jobs.
"""

from flask import send_file, jsonify # type: ignore
import io

from webui.api import downloads_bp
from webui.jobs import get_job_queue, JobStatus


@downloads_bp.route('/jobs/<job_id>/download', methods=['GET'])
def download_midi(job_id):
    """
    GET /api/jobs/:job_id/download

    Download the MIDI file produced by a conversion job.

    Args:
        job_id: Job ID

    Returns:
        200: MIDI file (audio/midi attachment)
        404: Job not found or produced no file
        409: Job has not finished yet
    """
    job = get_job_queue().get_job(job_id)
    if job is None:
        return jsonify({
            'error': 'Job not found',
            'message': f'No job with ID {job_id}'
        }), 404

    if job.status in (JobStatus.QUEUED, JobStatus.RUNNING):
        return jsonify({
            'error': 'Job not finished',
            'message': f'Job is {job.status.value}'
        }), 409

    artifact = job.artifact
    if artifact is None:
        return jsonify({
            'error': 'No file available',
            'message': f'Job {job.status.value} without producing a MIDI file'
        }), 404

    return send_file(
        io.BytesIO(artifact.data),
        mimetype=artifact.mime_type,
        as_attachment=True,
        download_name=artifact.file_name
    )
