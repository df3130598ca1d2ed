"""
Unit Tests for Audio to MIDI Web UI API

Tests all API endpoints with a mocked job queue.
Run with: pytest webui/test_api.py
"""

import pytest
import io
import json
from unittest.mock import Mock, patch

from audio_to_midi.processor import MidiArtifact
from audio_to_midi.midi import encode_midi
from webui.app import create_app
from webui.jobs import Job, JobStatus


@pytest.fixture
def app():
    """Create test Flask app"""
    app = create_app('testing')
    return app


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def finished_job():
    """Completed conversion job holding a MIDI file"""
    job = Job(id='job-1', operation='convert', source_name='song.mp3')
    job.status = JobStatus.COMPLETED
    job.artifact = MidiArtifact(data=encode_midi([60, 64, 67]), file_name='song_converted.mid')
    return job


class TestConvertAPI:
    """Test convert endpoint"""

    @patch('webui.api.convert.get_job_queue')
    def test_convert_success(self, mock_get_queue, client):
        """Test POST /api/convert with valid file"""
        mock_queue = Mock()
        mock_queue.submit.return_value = 'job-123'
        mock_get_queue.return_value = mock_queue

        response = client.post(
            '/api/convert',
            data={'file': (io.BytesIO(b'fake wav data'), 'test.wav')},
            content_type='multipart/form-data'
        )

        assert response.status_code == 202
        data = json.loads(response.data)
        assert data['job_id'] == 'job-123'
        assert data['file_name'] == 'test.wav'

        args, kwargs = mock_queue.submit.call_args
        assert args[0] == 'convert'
        assert kwargs['file_bytes'] == b'fake wav data'
        assert kwargs['file_name'] == 'test.wav'
        assert kwargs['source_name'] == 'test.wav'

    @patch('webui.api.convert.get_job_queue')
    def test_convert_accepts_audio_mime_type(self, mock_get_queue, client):
        """Any audio/* upload is accepted regardless of extension"""
        mock_queue = Mock()
        mock_queue.submit.return_value = 'job-456'
        mock_get_queue.return_value = mock_queue

        response = client.post(
            '/api/convert',
            data={'file': (io.BytesIO(b'webm data'), 'recording.webm', 'audio/webm')},
            content_type='multipart/form-data'
        )

        assert response.status_code == 202

    def test_convert_no_file(self, client):
        """Test POST /api/convert without file"""
        response = client.post('/api/convert')

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data['error'] == 'No file provided'

    def test_convert_invalid_type(self, client):
        """Test POST /api/convert with non-audio file"""
        response = client.post(
            '/api/convert',
            data={'file': (io.BytesIO(b'hello'), 'notes.txt', 'text/plain')},
            content_type='multipart/form-data'
        )

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data['error'] == 'Invalid file type'

    def test_convert_empty_file(self, client):
        """Test POST /api/convert with an empty upload"""
        response = client.post(
            '/api/convert',
            data={'file': (io.BytesIO(b''), 'empty.wav')},
            content_type='multipart/form-data'
        )

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data['error'] == 'Empty file'


class TestJobsAPI:
    """Test job status endpoints"""

    @patch('webui.api.job_status.get_job_queue')
    def test_list_jobs(self, mock_get_queue, client):
        """Test GET /api/jobs"""
        mock_queue = Mock()
        mock_job = Mock()
        mock_job.to_dict.return_value = {
            'id': 'job-1',
            'operation': 'convert',
            'status': 'Completed'
        }
        mock_queue.get_all_jobs.return_value = [mock_job]
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert len(data['jobs']) == 1

    @patch('webui.api.job_status.get_job_queue')
    def test_get_job_found(self, mock_get_queue, client, finished_job):
        """Test GET /api/jobs/:id when job exists"""
        mock_queue = Mock()
        mock_queue.get_job.return_value = finished_job
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs/job-1')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['job']['id'] == 'job-1'
        assert data['job']['has_artifact'] is True
        assert data['job']['source_name'] == 'song.mp3'

    @patch('webui.api.job_status.get_job_queue')
    def test_get_job_not_found(self, mock_get_queue, client):
        """Test GET /api/jobs/:id when job doesn't exist"""
        mock_queue = Mock()
        mock_queue.get_job.return_value = None
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs/nonexistent')

        assert response.status_code == 404

    @patch('webui.api.job_status.get_job_queue')
    def test_cancel_job(self, mock_get_queue, client):
        """Test POST /api/jobs/:id/cancel"""
        mock_queue = Mock()
        mock_queue.cancel_job.return_value = True
        mock_get_queue.return_value = mock_queue

        response = client.post('/api/jobs/job-1/cancel')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert 'Job cancelled' in data['message']

    @patch('webui.api.job_status.get_job_queue')
    def test_cancel_finished_job(self, mock_get_queue, client, finished_job):
        """Test POST /api/jobs/:id/cancel on a completed job"""
        mock_queue = Mock()
        mock_queue.cancel_job.return_value = False
        mock_queue.get_job.return_value = finished_job
        mock_get_queue.return_value = mock_queue

        response = client.post('/api/jobs/job-1/cancel')

        assert response.status_code == 400

    @patch('webui.api.job_status.get_job_queue')
    def test_stream_finished_job(self, mock_get_queue, client, finished_job):
        """Test GET /api/jobs/:id/stream ends with job_complete"""
        mock_queue = Mock()
        mock_queue.get_job.return_value = finished_job
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs/job-1/stream')

        assert response.status_code == 200
        assert response.mimetype == 'text/event-stream'
        body = response.get_data(as_text=True)
        assert 'event: job_complete' in body


class TestDownloadsAPI:
    """Test MIDI download endpoint"""

    @patch('webui.api.downloads.get_job_queue')
    def test_download_midi(self, mock_get_queue, client, finished_job):
        """Test GET /api/jobs/:id/download"""
        mock_queue = Mock()
        mock_queue.get_job.return_value = finished_job
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs/job-1/download')

        assert response.status_code == 200
        assert response.mimetype == 'audio/midi'
        assert 'song_converted.mid' in response.headers['Content-Disposition']
        assert response.data == finished_job.artifact.data

    @patch('webui.api.downloads.get_job_queue')
    def test_download_running_job(self, mock_get_queue, client):
        mock_queue = Mock()
        mock_queue.get_job.return_value = Job(id='job-2', operation='convert', status=JobStatus.RUNNING)
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs/job-2/download')

        assert response.status_code == 409

    @patch('webui.api.downloads.get_job_queue')
    def test_download_failed_job(self, mock_get_queue, client):
        mock_queue = Mock()
        mock_queue.get_job.return_value = Job(id='job-3', operation='convert', status=JobStatus.FAILED)
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs/job-3/download')

        assert response.status_code == 404

    @patch('webui.api.downloads.get_job_queue')
    def test_download_unknown_job(self, mock_get_queue, client):
        mock_queue = Mock()
        mock_queue.get_job.return_value = None
        mock_get_queue.return_value = mock_queue

        response = client.get('/api/jobs/missing/download')

        assert response.status_code == 404


class TestHealthCheck:
    """Test health check endpoint"""

    def test_health(self, client):
        """Test GET /health"""
        response = client.get('/health')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'healthy'
        assert 'version' in data


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
