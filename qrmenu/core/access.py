"""
Caller identity handed to the services.

Credentials are verified by the HTTP layer; services only ever see who the
caller is and which role they hold.
"""

from dataclasses import dataclass

from qrmenu.models import UserRole


@dataclass(frozen=True)
class AccessContext:
    identity: int
    role: UserRole

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.STAFF, UserRole.ADMIN)
