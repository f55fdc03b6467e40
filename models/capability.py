"""
Reviewer capability handed to the synchronization controller.

Sign-in and role lookup happen elsewhere; the dashboard only consumes the
resulting capability flags.
"""

from dataclasses import dataclass
from typing import Optional

from .enums import UserRole, parse_enum


@dataclass(frozen=True)
class ReviewerCapability:
    """
    Attributes:
        signed_in: Whether a session is active
        role: Role of the signed-in user, None if unknown
    """

    signed_in: bool = False
    role: Optional[UserRole] = None

    @classmethod
    def for_role(cls, role, signed_in: bool = True) -> "ReviewerCapability":
        return cls(signed_in=signed_in, role=parse_enum(UserRole, role))

    @property
    def can_update_records(self) -> bool:
        return self.signed_in and self.role in (UserRole.REVIEWER, UserRole.ADMIN)
