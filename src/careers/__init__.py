"""
Careers API - application tracking for job, internship and spontaneous intake.
"""

__version__ = "0.1.0"
