"""
Stock Kernel

Persistence, read-side selectors and shared infrastructure for raw-material
stock reporting:
- Structured logging and typed exceptions
- Injectable clock and tolerant numeric coercion
- SQLAlchemy models for materials, lots, movements and sales documents
- Snapshot selectors and an explicit snapshot cache
"""

__version__ = "0.1.0"
