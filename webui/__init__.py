"""
Audio to MIDI Web UI: Flask API and background job queue.
"""
