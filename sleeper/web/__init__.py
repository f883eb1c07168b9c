"""Web interface for Sleeper System."""

from .app import create_app, socketio

__all__ = ["create_app", "socketio"]
