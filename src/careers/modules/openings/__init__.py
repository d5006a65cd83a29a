"""
Job Openings Module

Read-only view of published job openings. Openings are managed by an
external administrative tool; applications reference them by id.
"""

from .models import JobOpening

__all__ = ["JobOpening"]
