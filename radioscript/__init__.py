"""
RadioScript - Radiology Dictation Transcription Service

A FastAPI-based service that transcribes recorded radiology reports
with hosted Gemini models, splitting long dictations into chunks.
"""

__version__ = "1.0.0"
__author__ = "radioscript"
