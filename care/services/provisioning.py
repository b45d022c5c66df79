"""
Keep a staff profile row in step with an account's role.

:func:`ensure_profile` is called after every account create or edit.
It is idempotent: the second call for the same account and role
updates the row the first call created. An unlinked row carrying the
account email is adopted rather than duplicated. Profile trouble never undoes
the account write; it comes back as ``ProvisioningResult.warning`` and
the caller shows it next to the success message.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from django.db import DatabaseError, models, transaction

from care.models import User
from care.services.audit import log_action
from care.services.identity import (
    PROFILELESS_ROLES,
    ROLE_PROFILES,
    StaffProfileKind,
    find_linked_profile,
    heal_link,
    match_by_email,
)

logger = logging.getLogger(__name__)

COMMON_FIELDS = ('first_name', 'last_name', 'email', 'contact_number', 'department')

EXTRA_FIELDS = {
    StaffProfileKind.DOCTOR: ('specialization', 'license_number', 'consultation_fee', 'address'),
    StaffProfileKind.NURSE: ('license_number',),
    StaffProfileKind.RECEPTION: ('employee_id',),
    StaffProfileKind.ACCOUNTS: ('employee_id',),
}

CREATE_DEFAULTS = {
    StaffProfileKind.DOCTOR: {'specialization': 'General', 'consultation_fee': Decimal('0')},
}


@dataclass
class ProvisioningResult:
    role: str
    kind: Optional[StaffProfileKind] = None
    profile: Any = None
    created: bool = False
    updated: bool = False
    adopted: bool = False
    warning: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.warning is None


def _collect(account: User, kind: StaffProfileKind, fields: Optional[dict]) -> dict:
    values = {
        'first_name': account.first_name,
        'last_name': account.last_name,
        'email': account.email,
        'contact_number': getattr(account, 'phone_number', ''),
    }
    allowed = COMMON_FIELDS + EXTRA_FIELDS[kind]
    for key, value in (fields or {}).items():
        if key in allowed and value is not None:
            values[key] = value
    return {k: v for k, v in values.items() if v is not None}


def _fit_to_columns(model, values: dict, account: User) -> dict:
    """Cut char values down to their column width instead of rejecting them."""
    fitted = {}
    for name, value in values.items():
        field = model._meta.get_field(name)
        if isinstance(field, models.CharField) and isinstance(value, str):
            value = value.strip()
            if field.max_length and len(value) > field.max_length:
                logger.warning(
                    '%s.%s for account %s truncated from %d to %d chars',
                    model.__name__, name, account.id, len(value), field.max_length,
                )
                value = value[:field.max_length]
        fitted[name] = value
    return fitted


def _log_orphans(account: User, kind: StaffProfileKind) -> None:
    for other in StaffProfileKind:
        if other is kind:
            continue
        stale = other.model.objects.filter(user=account).values_list('id', flat=True).first()
        if stale is not None:
            logger.info('account %s keeps its previous %s profile %s after moving to %s', account.id, other.value, stale, kind.value)


def ensure_profile(account: User, role: Optional[str] = None, fields: Optional[dict] = None, *, actor: Optional[User] = None) -> ProvisioningResult:
    role = role or account.role
    result = ProvisioningResult(role=role)

    if role in PROFILELESS_ROLES:
        logger.info('role %s needs no staff profile (account %s)', role, account.id)
        return result
    entry = ROLE_PROFILES.get(role)
    if entry is None:
        logger.warning('unknown role %r for account %s, no profile provisioned', role, account.id)
        return result

    kind, default_department = entry
    result.kind = kind
    model = kind.model
    values = _fit_to_columns(model, _collect(account, kind, fields), account)

    try:
        with transaction.atomic():
            profile = find_linked_profile(account, kind)
            if profile is None:
                # a legacy row with the same email and no owner becomes this account's profile
                candidate = match_by_email(account, kind)
                if candidate is not None and candidate.user_id is None:
                    profile = heal_link(candidate, account)
                    result.adopted = True
                elif candidate is not None:
                    logger.warning(
                        '%s profile %s shares the email of account %s but belongs to account %s',
                        kind.value, candidate.id, account.id, candidate.user_id,
                    )
            if profile is not None:
                for name, value in values.items():
                    if result.adopted and value in ('', None):
                        continue
                    setattr(profile, name, value)
                profile.save()
                result.updated = True
            else:
                data = {**CREATE_DEFAULTS.get(kind, {}), **values}
                if not data.get('department'):
                    data['department'] = default_department
                if kind == StaffProfileKind.DOCTOR and not data.get('specialization'):
                    data['specialization'] = 'General'
                profile = model.objects.create(user=account, is_active=True, **data)
                result.created = True
            log_action(
                user=actor or account, action='profile_provision', object_type=kind.value, object_id=profile.id,
                detail={'account': account.id, 'role': role, 'created': result.created, 'adopted': result.adopted},
            )
    except DatabaseError:
        logger.exception('provisioning %s profile for account %s failed', kind.value, account.id)
        result.warning = f'User saved but the {kind.value} profile could not be created. Use "repair profile" to retry.'
        return result

    if not model.objects.filter(pk=profile.pk, user=account).exists():
        logger.warning('%s profile %s not found after save for account %s', kind.value, profile.pk, account.id)
        result.warning = f'User saved but the {kind.value} profile could not be verified.'
        return result

    result.profile = profile
    logger.info(
        '%s %s profile %s for account %s',
        'created' if result.created else 'adopted' if result.adopted else 'updated', kind.value, profile.id, account.id,
    )
    if result.created:
        _log_orphans(account, kind)
    return result
