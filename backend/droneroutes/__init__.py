"""
Drone Routes Backend — Application Package
============================================

Layers:
    ┌─────────────────────────────────────┐
    │  routes/    HTTP handlers           │  ← status codes, multipart parsing
    ├─────────────────────────────────────┤
    │  services/  business logic          │  ← CSV parsing, photo fan-out, CRUD
    ├─────────────────────────────────────┤
    │  models/ + schemas/                 │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  database.py                        │  ← async sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
