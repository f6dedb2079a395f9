"""Alera — artist portal API for a music-distribution service.

Authentication, admin dashboards, revenue upload, withdrawals,
subscription billing and public artist landing pages.
"""

__version__ = "0.1.0"
