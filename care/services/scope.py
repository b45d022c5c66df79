"""
Role-based narrowing of clinical data.

A :class:`StaffScope` is built once per request from the authenticated
account and handed to every query helper. Admins see everything.
Doctors and nurses see the records assigned to their own profile, and
the patients referenced by those records. A doctor or nurse whose
profile cannot be resolved sees nothing; the scope carries a
``condition`` so dashboards can explain why instead of failing.

Front-desk roles (reception, accounts, lab) have no assignee relation
on clinical records. They work against the registry (patients,
appointments, procedures, lab tests, billing) unfiltered through
:func:`visible_records` / :func:`visible_patients`, and are kept out of
nursing and doctor endpoints by the permission classes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db.models import Q, QuerySet
from rest_framework.exceptions import NotFound, PermissionDenied

from care.models import Appointment, NursingNote, Nurse, Patient, PatientVital, Procedure, User
from care.services.identity import StaffProfileKind, kind_for_role, resolve

PROFILE_NOT_LINKED = 'profile not linked'

REGISTRY_ROLES = {User.ROLE_RECEPTION, User.ROLE_ACCOUNTS, User.ROLE_LAB}

# record model -> profile kind -> FK field naming the assignee
ASSIGNEE_FIELDS = {
    Appointment: {StaffProfileKind.NURSE: 'nurse', StaffProfileKind.DOCTOR: 'doctor'},
    Procedure: {StaffProfileKind.NURSE: 'nurse', StaffProfileKind.DOCTOR: 'doctor'},
    NursingNote: {StaffProfileKind.NURSE: 'nurse'},
    PatientVital: {StaffProfileKind.NURSE: 'nurse'},
}

# reverse accessor on Patient for each record model
_PATIENT_RELATIONS = {
    Appointment: 'appointments',
    Procedure: 'procedures',
    NursingNote: 'nursing_notes',
    PatientVital: 'vitals',
}


@dataclass(frozen=True)
class StaffScope:
    account: User
    role: str
    kind: Optional[StaffProfileKind] = None
    profile: object = None

    @property
    def unrestricted(self) -> bool:
        return self.role == User.ROLE_ADMIN

    @property
    def registry(self) -> bool:
        return self.unrestricted or self.role in REGISTRY_ROLES

    @property
    def profile_linked(self) -> bool:
        return self.profile is not None

    @property
    def condition(self) -> Optional[str]:
        if self.unrestricted or self.kind is None or self.profile_linked:
            return None
        return PROFILE_NOT_LINKED

    @property
    def message(self) -> Optional[str]:
        if self.condition is None:
            return None
        label = self.kind.value.capitalize() if self.kind else 'Staff'
        return f'{label} profile not found. Please contact the administrator to set up your profile.'


def scope_for(account: User) -> StaffScope:
    role = getattr(account, 'role', '') or ''
    kind = kind_for_role(role)
    profile = resolve(account, kind) if kind else None
    return StaffScope(account=account, role=role, kind=kind, profile=profile)


def assignee_field(scope: StaffScope, model) -> Optional[str]:
    if scope.kind is None:
        return None
    return ASSIGNEE_FIELDS.get(model, {}).get(scope.kind)


def scope_records(scope: StaffScope, queryset: QuerySet) -> QuerySet:
    """Records of ``queryset`` whose assignee is the scope's profile."""
    if scope.unrestricted:
        return queryset
    field = assignee_field(scope, queryset.model)
    if field is None or scope.profile is None:
        return queryset.none()
    return queryset.filter(**{field: scope.profile})


def scope_patients(scope: StaffScope, queryset: Optional[QuerySet] = None) -> QuerySet:
    """Patients referenced by at least one record visible to the scope."""
    qs = queryset if queryset is not None else Patient.objects.all()
    if scope.unrestricted:
        return qs
    if scope.profile is None:
        return qs.none()
    cond = Q()
    matched = False
    for model, relation in _PATIENT_RELATIONS.items():
        field = assignee_field(scope, model)
        if field is None:
            continue
        cond |= Q(**{f'{relation}__{field}': scope.profile})
        matched = True
    if not matched:
        return qs.none()
    return qs.filter(cond).distinct()


def visible_records(scope: StaffScope, queryset: QuerySet) -> QuerySet:
    if scope.registry:
        return queryset
    return scope_records(scope, queryset)


def visible_patients(scope: StaffScope, queryset: Optional[QuerySet] = None) -> QuerySet:
    if scope.registry:
        return queryset if queryset is not None else Patient.objects.all()
    return scope_patients(scope, queryset)


# ---------------------------------------------------------------------
# Write side
# ---------------------------------------------------------------------
def can_access_patient(scope: StaffScope, patient: Patient) -> bool:
    if scope.registry:
        return True
    return scope_patients(scope).filter(pk=patient.pk).exists()


def ensure_patient_in_scope(scope: StaffScope, patient: Patient) -> Patient:
    if not can_access_patient(scope, patient):
        raise PermissionDenied('You do not have access to this patient.')
    return patient


def can_modify_record(scope: StaffScope, record) -> bool:
    if scope.unrestricted:
        return True
    if scope.role in REGISTRY_ROLES:
        return type(record) in (Appointment, Procedure)
    field = assignee_field(scope, type(record))
    if field is None or scope.profile is None:
        return False
    return getattr(record, f'{field}_id') == scope.profile.pk


def ensure_can_modify(scope: StaffScope, record):
    if not can_modify_record(scope, record):
        raise PermissionDenied('You can only modify records assigned to you.')
    return record


def ensure_assignee_allowed(scope: StaffScope, model, requested_id: Optional[int]) -> Optional[int]:
    """Assignee id to store on a new or edited record.

    Non-admin staff may only file records under their own profile; an
    omitted assignee defaults to it.
    """
    if scope.registry:
        return requested_id
    field = assignee_field(scope, model)
    if field is None or scope.profile is None:
        raise PermissionDenied(scope.message or 'Your role cannot create this record.')
    if requested_id not in (None, '') and str(requested_id) != str(scope.profile.pk):
        raise PermissionDenied('You cannot assign records to another staff member.')
    return scope.profile.pk


def form_options(scope: StaffScope) -> dict:
    """Dropdown sources for nursing forms, drawn from the scoped querysets."""
    patients = scope_patients(scope).order_by('first_name', 'last_name')
    appointments = scope_records(scope, Appointment.objects.select_related('patient')).order_by('-appointment_date')
    procedures = scope_records(scope, Procedure.objects.select_related('patient')).order_by('-procedure_date')
    nurses = Nurse.objects.filter(is_active=True).order_by('first_name', 'last_name')
    preselected = scope.profile.pk if scope.kind == StaffProfileKind.NURSE and scope.profile is not None else None
    return {
        'patients': [{'id': p.id, 'label': f'{p.full_name} ({p.mr_number})'} for p in patients],
        'appointments': [
            {'id': a.id, 'label': f'{a.patient.full_name} - {a.appointment_date:%Y-%m-%d %H:%M}'} for a in appointments
        ],
        'procedures': [
            {'id': pr.id, 'label': f'{pr.procedure_name} - {pr.patient.full_name}'} for pr in procedures
        ],
        'nurses': [{'id': n.id, 'label': n.full_name} for n in nurses],
        'selectedNurseId': preselected,
    }


def get_visible(scope: StaffScope, queryset: QuerySet, pk):
    """Fetch one record through the scope; out-of-scope rows look missing."""
    obj = visible_records(scope, queryset).filter(pk=pk).first()
    if obj is None:
        raise NotFound(f'{queryset.model.__name__} not found')
    return obj
