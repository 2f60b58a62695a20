"""
Sound Decoder

Submit a short animal sound recording, play it back, and get a species
and meaning classification from a pluggable classification service,
with a history of past analyses.
"""

__version__ = "1.0.0"
__author__ = "Sound Decoder Team"
