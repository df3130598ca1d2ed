"""
API Blueprints

Organizes Flask API endpoints into logical blueprints.
"""

from flask import Blueprint

# Create blueprints
convert_bp = Blueprint('convert', __name__, url_prefix='/api')
jobs_bp = Blueprint('jobs', __name__, url_prefix='/api')
downloads_bp = Blueprint('downloads', __name__, url_prefix='/api')
