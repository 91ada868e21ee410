"""
Lightweight Web Analytics

Beacon ingestion and dashboard aggregation over an embedded SQLite store.
"""

__version__ = "1.0.0"
