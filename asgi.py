"""
asgi.py -- ASGI entry point for the Oil Union API.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Kept separate from api/main.py so process managers and the CLI reference one
stable import path regardless of how the api/ package is arranged.
"""

from api.main import app

__all__ = ["app"]
