"""
MediCamp Backend - ORM Models
===============================

Importing this package registers every table with Base.metadata, which is
what create_tables() and Alembic autogenerate rely on.
"""

from medicamp.models.camp import Camp
from medicamp.models.feedback import Feedback
from medicamp.models.registration import (
    ConfirmationStatus,
    PaymentStatus,
    Registration,
)
from medicamp.models.user import Role, User

__all__ = [
    "Camp",
    "ConfirmationStatus",
    "Feedback",
    "PaymentStatus",
    "Registration",
    "Role",
    "User",
]
