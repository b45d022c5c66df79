"""
Resolve a login account to its clinical staff profile.

Clinical records reference staff profile rows, not accounts, so every
role-scoped operation first needs the profile behind the current
account. Resolution tries the account back-reference first and falls
back to a case-insensitive email match for profiles created before the
account existed. A profile found by email with an empty back-reference
is linked on the spot (:func:`heal_link`).

Callers always pass the account explicitly; nothing here reads an
ambient "current user".
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from django.db import DatabaseError, transaction

from care.models import AccountsStaff, Doctor, Nurse, ReceptionStaff, User
from care.services.audit import log_action

logger = logging.getLogger(__name__)

StaffProfileModel = Union[Doctor, Nurse, ReceptionStaff, AccountsStaff]


class StaffProfileKind(str, Enum):
    DOCTOR = 'doctor'
    NURSE = 'nurse'
    RECEPTION = 'reception'
    ACCOUNTS = 'accounts'

    @property
    def model(self):
        return _KIND_MODELS[self]


_KIND_MODELS = {
    StaffProfileKind.DOCTOR: Doctor,
    StaffProfileKind.NURSE: Nurse,
    StaffProfileKind.RECEPTION: ReceptionStaff,
    StaffProfileKind.ACCOUNTS: AccountsStaff,
}

# role -> (profile table, department written on a fresh row)
ROLE_PROFILES: dict[str, tuple[StaffProfileKind, str]] = {
    User.ROLE_DOCTOR: (StaffProfileKind.DOCTOR, ''),
    User.ROLE_NURSE: (StaffProfileKind.NURSE, 'Nursing'),
    User.ROLE_RECEPTION: (StaffProfileKind.RECEPTION, 'Reception'),
    User.ROLE_LAB: (StaffProfileKind.RECEPTION, 'Laboratory'),
    User.ROLE_ACCOUNTS: (StaffProfileKind.ACCOUNTS, 'Accounts'),
}

PROFILELESS_ROLES = {User.ROLE_ADMIN, User.ROLE_PATIENT}


def kind_for_role(role: Optional[str]) -> Optional[StaffProfileKind]:
    entry = ROLE_PROFILES.get(role or '')
    return entry[0] if entry else None


def kind_of(profile) -> Optional[StaffProfileKind]:
    for kind, model in _KIND_MODELS.items():
        if isinstance(profile, model):
            return kind
    return None


def find_linked_profile(account: User, kind: StaffProfileKind) -> Optional[StaffProfileModel]:
    """Profile whose back-reference already points at ``account``."""
    return kind.model.objects.filter(user=account).first()


def match_by_email(account: User, kind: StaffProfileKind) -> Optional[StaffProfileModel]:
    """Profile whose email equals the account email, ignoring case.

    Unlinked rows win over rows already linked elsewhere.
    """
    email = (account.email or '').strip()
    if not email:
        return None
    candidates = kind.model.objects.filter(email__iexact=email)
    return candidates.filter(user__isnull=True).order_by('id').first() or candidates.order_by('id').first()


def heal_link(profile: StaffProfileModel, account: User) -> StaffProfileModel:
    """Persist ``profile.user = account`` and record the repair."""
    kind = kind_of(profile)
    try:
        with transaction.atomic():
            profile.user = account
            profile.save(update_fields=['user', 'updated_at'])
            log_action(
                user=account, action='profile_link', object_type=kind.value if kind else None,
                object_id=profile.id, detail={'via': 'email', 'email': account.email},
            )
    except DatabaseError:
        # keep the instance in step with the row, which is still unlinked
        profile.user = None
        raise
    logger.info('linked %s profile %s to account %s by email', kind.value if kind else '?', profile.id, account.id)
    return profile


def resolve(account: Optional[User], kind: Optional[StaffProfileKind] = None, *, heal: bool = True) -> Optional[StaffProfileModel]:
    """Return the staff profile for ``account`` or ``None``.

    ``kind`` defaults to the table implied by the account role. A miss
    is a normal outcome, not an error: callers branch on ``None``.
    """
    if account is None or not getattr(account, 'pk', None):
        return None
    kind = kind or kind_for_role(getattr(account, 'role', None))
    if kind is None:
        return None

    profile = find_linked_profile(account, kind)
    if profile is not None:
        return profile

    profile = match_by_email(account, kind)
    if profile is None:
        logger.info('no %s profile for account %s (%s)', kind.value, account.id, account.email or 'no email')
        return None

    if profile.user_id is None:
        if heal:
            try:
                heal_link(profile, account)
            except DatabaseError:
                logger.exception('could not link %s profile %s to account %s', kind.value, profile.id, account.id)
        return profile

    logger.warning(
        '%s profile %s matched account %s by email but is linked to account %s',
        kind.value, profile.id, account.id, profile.user_id,
    )
    return profile


def profile_summary(profile: Optional[StaffProfileModel]) -> Optional[dict]:
    if profile is None:
        return None
    kind = kind_of(profile)
    return {
        'id': profile.id,
        'kind': kind.value if kind else None,
        'name': profile.full_name,
        'email': profile.email,
        'department': profile.department,
        'isActive': profile.is_active,
        'linked': profile.user_id is not None,
    }
