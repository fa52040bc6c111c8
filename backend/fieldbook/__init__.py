"""
Fieldbook Backend — Application Package Initializer
====================================================

What: Marks the `fieldbook` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The record service follows the same layered split for every content kind:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, identity lookup
    ├─────────────────────────────────────┤
    │   Services (Locator, Shape Merger)  │  ← Visibility rules, normalization
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │      Record Store (Persistence)     │  ← Injected async engine + pool
    └─────────────────────────────────────┘

    Every stored record travels Locator → Shape Merger → Response Envelope.
    The envelope is the set of exception handlers registered in main.py.
"""

__version__ = "1.0.0"
