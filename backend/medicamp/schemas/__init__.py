"""
MediCamp Backend - API Schemas
================================

Pydantic models defining the contract between the frontend and the backend.
Kept separate from the ORM models so the API can evolve independently of the
tables and never exposes internal columns by accident.
"""
