from __future__ import annotations

"""
Check-in service: health, Prometheus metrics and a read-only
recent check-ins endpoint over an optional Postgres database.
"""

__version__ = "0.1.0"
