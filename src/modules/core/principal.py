"""Authenticated principal passed explicitly into service calls.

Views build a ``Principal`` from ``request.user`` once, at the HTTP
boundary.  Services never look at the request or at Django's user model;
they only ask the principal who owns the call and whether it may perform
privileged operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from django.db import models


class Role(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    ADMIN = "admin", "Admin"


class PermissionDenied(Exception):
    """The principal lacks the capability required by the operation."""

    code = "permission_denied"


@dataclass(frozen=True)
class Principal:
    """Immutable caller identity: user id + role."""

    user_id: int
    role: Role = Role.CUSTOMER

    @classmethod
    def from_user(cls, user: Any) -> Principal:
        """Build a principal from an authenticated Django user.

        Staff users carry the admin role.
        """
        role = Role.ADMIN if getattr(user, "is_staff", False) else Role.CUSTOMER
        return cls(user_id=user.pk, role=role)

    @property
    def owner_id(self) -> int:
        """Identifier used to scope owned resources (orders)."""
        return self.user_id

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def require_admin(self) -> None:
        """Raise ``PermissionDenied`` unless the principal is an admin."""
        if not self.is_admin:
            raise PermissionDenied("Admin privileges required.")
