"""
MediCamp Backend - Authorization Policy
=========================================

What:  One authorization check shared by every operation.
How:   Each operation declares the capabilities that admit a caller:

           AUTHENTICATED  any signed-in caller
           ORGANIZER      caller holds the organizer role
           SELF_OWNER     caller's email equals the record owner's email

       authorize() passes when ANY listed capability holds. Owner equality
       is enforced the same way for every operation that names SELF_OWNER.

Example:
    authorize(caller, Capability.SELF_OWNER, Capability.ORGANIZER, owner_email=email)
"""

import enum
from dataclasses import dataclass
from typing import Optional

from medicamp.exceptions import ForbiddenError, UnauthenticatedError
from medicamp.models.user import Role
from medicamp.security.tokens import normalize_email


@dataclass(frozen=True)
class Caller:
    """The authenticated identity behind a request."""
    email: str
    role: Role = Role.PARTICIPANT

    @property
    def is_organizer(self) -> bool:
        return self.role == Role.ORGANIZER


class Capability(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    ORGANIZER = "organizer"
    SELF_OWNER = "self_owner"


def _holds(caller: Caller, capability: Capability, owner_email: Optional[str]) -> bool:
    if capability is Capability.AUTHENTICATED:
        return True
    if capability is Capability.ORGANIZER:
        return caller.is_organizer
    if capability is Capability.SELF_OWNER:
        if owner_email is None:
            raise ValueError("SELF_OWNER requires owner_email")
        return normalize_email(caller.email) == normalize_email(owner_email)
    return False


def authorize(
    caller: Optional[Caller],
    *capabilities: Capability,
    owner_email: Optional[str] = None,
) -> Caller:
    """
    Returns the caller when at least one capability holds.

    Raises:
        UnauthenticatedError: caller is None.
        ForbiddenError: caller is signed in but no capability holds.
    """
    if caller is None:
        raise UnauthenticatedError()
    if not capabilities:
        capabilities = (Capability.AUTHENTICATED,)

    if any(_holds(caller, capability, owner_email) for capability in capabilities):
        return caller

    raise ForbiddenError(
        required=" or ".join(c.value for c in capabilities),
        context={"caller": caller.email},
    )
