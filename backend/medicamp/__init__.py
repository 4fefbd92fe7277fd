"""
MediCamp Backend - Application Package
========================================

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Security (tokens, caller, policy)  │  ← who may do what
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← registration ledger, camps,
    │                                     │    users, feedback, payments
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
