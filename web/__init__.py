"""
Web application package for the checkers engine.

Provides a FastAPI-based REST API for rule checks, computer moves and online
rooms. Serve it with uvicorn: `uvicorn web.app:app`.
"""
