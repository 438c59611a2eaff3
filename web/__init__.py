"""
Web application package for the piece tracker.

Provides a FastAPI REST API over a single game session, returning the tracked
pieces a 3D board renderer keys its animations on, plus move commentary from
an OpenAI-compatible text-generation service.
"""
