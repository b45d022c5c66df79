"""
Role based permission classes.

Roles gate which endpoints a caller may reach at all; which rows they
then see is decided by ``care.services.scope``.
"""
from rest_framework.permissions import BasePermission

from care.models import User

CLINICAL_ROLES = {User.ROLE_DOCTOR, User.ROLE_NURSE}
REGISTRY_ROLES = {User.ROLE_RECEPTION, User.ROLE_ACCOUNTS, User.ROLE_LAB}
STAFF_ROLES = CLINICAL_ROLES | REGISTRY_ROLES


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class RolePermission(BasePermission):
    """Allow the roles listed in ``roles``; admin is always allowed."""
    roles: frozenset = frozenset()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = _role(request)
        return role == User.ROLE_ADMIN or role in self.roles


class IsAdminRole(RolePermission):
    """Allow access only to administrators."""


class IsStaff(RolePermission):
    """Any clinic staff member."""
    roles = frozenset(STAFF_ROLES)


class IsDoctor(RolePermission):
    roles = frozenset({User.ROLE_DOCTOR})


class IsNurse(RolePermission):
    roles = frozenset({User.ROLE_NURSE})


class IsFrontDesk(RolePermission):
    """Patient registration and scheduling desk."""
    roles = frozenset({User.ROLE_RECEPTION})


class IsBilling(RolePermission):
    roles = frozenset({User.ROLE_ACCOUNTS, User.ROLE_RECEPTION})


class IsLab(RolePermission):
    roles = frozenset({User.ROLE_LAB})


class IsLabOrClinical(RolePermission):
    roles = frozenset({User.ROLE_LAB, User.ROLE_DOCTOR, User.ROLE_RECEPTION})

