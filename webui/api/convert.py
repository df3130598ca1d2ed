"""
Convert API Endpoint

Accepts an uploaded audio file and queues its conversion to MIDI.
"""

from flask import jsonify, request, current_app # type: ignore
from pathlib import Path
from werkzeug.utils import secure_filename # type: ignore

from audio_to_midi.config import load_config, ConversionSettings
from audio_to_midi.processor import run_conversion, print_progress
from webui.api import convert_bp
from webui.config import Config
from webui.jobs import get_job_queue


def run_convert(file_bytes: bytes, file_name: str, config_path: str = None):
    """
    Execute a conversion for uploaded audio.

    This is the actual work function that runs in the job queue. Progress
    is printed and picked up by the queue's stdout capture.
    """
    config = load_config(Path(config_path) if config_path else None)
    settings = ConversionSettings.from_config(config)

    print(f"Converting {file_name} ({len(file_bytes)} bytes)")
    return run_conversion(file_bytes, file_name, settings=settings, observer=print_progress)


@convert_bp.route('/convert', methods=['POST'])
def convert_file():
    """
    POST /api/convert

    Upload an audio file and start converting it to MIDI.

    Request:
        - multipart/form-data with 'file' field
        - file must be audio (.mp3, .wav, .m4a, .aac or an audio/* MIME type)

    Returns:
        202: Conversion queued
        400: Bad request (no file, invalid format, empty file)
        500: Internal error

    Response format:
        {
            "message": "Conversion started",
            "job_id": "uuid-here",
            "file_name": "song.mp3"
        }
    """
    try:
        if 'file' not in request.files:
            return jsonify({
                'error': 'No file provided',
                'message': 'Request must include a file in the "file" field'
            }), 400

        file = request.files['file']

        if file.filename == '':
            return jsonify({
                'error': 'No file selected',
                'message': 'Please select a file to convert'
            }), 400

        if not Config.allowed_file(file.filename, file.mimetype):
            return jsonify({
                'error': 'Invalid file type',
                'message': f'File must be one of: {", ".join(sorted(Config.ALLOWED_EXTENSIONS))}'
            }), 400

        filename = secure_filename(file.filename) or 'audio'
        file_bytes = file.read()

        if not file_bytes:
            return jsonify({
                'error': 'Empty file',
                'message': f'{filename} contains no data'
            }), 400

        job_queue = get_job_queue()
        job_id = job_queue.submit(
            'convert',
            run_convert,
            source_name=filename,
            file_bytes=file_bytes,
            file_name=filename,
            config_path=current_app.config.get('CONVERSION_CONFIG')
        )

        return jsonify({
            'message': 'Conversion started',
            'job_id': job_id,
            'file_name': filename
        }), 202

    except Exception as e:
        return jsonify({
            'error': 'Conversion failed to start',
            'message': str(e)
        }), 500
