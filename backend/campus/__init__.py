"""
Campus Portal Backend — Application Package Initializer
=========================================================

What: Marks the `campus` directory as a Python package.
Who:  Used by pytest, uvicorn (`uvicorn campus.main:app`) and every module
      that imports `from campus.config import settings`.

Architecture Note:
    ┌─────────────────────────────────────┐
    │     Middleware (rate limit, IDs,    │  ← every request
    │     logging, exception boundary)    │
    ├─────────────────────────────────────┤
    │   Filter pipeline (per route)       │  ← resource → authorization →
    │                                     │    action → handler → result
    ├─────────────────────────────────────┤
    │       Routes → Services             │  ← HTTP concerns / business rules
    ├─────────────────────────────────────┤
    │   Repositories, Models & Schemas    │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
