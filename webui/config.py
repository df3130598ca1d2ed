"""
Flask Application Configuration

Provides configuration settings for the Audio to MIDI Web UI Flask application.
Supports development and production environments.
"""

import os

from audio_to_midi.helpers import ACCEPTED_EXTENSIONS, is_audio_file


class Config:
    """Base configuration"""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Application settings
    APP_NAME = 'Audio to MIDI'
    APP_VERSION = '0.1.0'

    # File upload settings
    MAX_CONTENT_LENGTH = 100 * 1024 * 1024  # 100MB max file size
    ALLOWED_EXTENSIONS = {ext.lstrip('.') for ext in ACCEPTED_EXTENSIONS}

    # Conversion settings (None = audio_to_midi/audioconfig.yaml)
    CONVERSION_CONFIG = os.environ.get('CONVERSION_CONFIG')

    # Job queue settings; one conversion at a time
    MAX_CONCURRENT_JOBS = 1

    # API settings
    API_PREFIX = '/api'
    CORS_ENABLED = True

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    @staticmethod
    def allowed_file(filename, mime_type=None):
        """Check if file extension or MIME type is allowed"""
        return is_audio_file(filename, mime_type)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False
    # In production, SECRET_KEY must be set via environment variable


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(env=None):
    """
    Get configuration for specified environment.

    Args:
        env: Environment name ('development', 'production', 'testing')
             If None, uses FLASK_ENV environment variable or 'default'

    Returns:
        Configuration class
    """
    if env is None:
        env = os.environ.get('FLASK_ENV', 'default')
    return config.get(env, config['default'])
