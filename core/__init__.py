"""
Shared components for the booking engine.

Holds the exception hierarchy and the DRF exception handler used by every app.
"""

__version__ = "0.1.0"
