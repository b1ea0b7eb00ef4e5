"""
Encrypted persistence for the uploader's MediaFire session.

The exported session is serialized to JSON, encrypted with Fernet and stored
in S3 so that a rotated secret survives between runs.
"""

from .models import State

__all__ = ["State"]
