"""Nursing dashboard, notes, vitals and patient progress."""
from __future__ import annotations

import datetime
import logging
from typing import Optional

from django.utils import timezone
from rest_framework.exceptions import ValidationError

from care.models import Appointment, NursingNote, Nurse, Patient, PatientVital, Procedure, User
from care.services.audit import log_action
from care.services.records import persist
from care.services.scope import (
    StaffScope,
    ensure_assignee_allowed,
    ensure_can_modify,
    ensure_patient_in_scope,
    scope_records,
)

logger = logging.getLogger(__name__)


def notes_queryset(scope: StaffScope):
    return scope_records(scope, NursingNote.objects.select_related('patient', 'nurse'))


def vitals_queryset(scope: StaffScope):
    return scope_records(scope, PatientVital.objects.select_related('patient', 'nurse'))


def procedures_queryset(scope: StaffScope):
    return scope_records(scope, Procedure.objects.select_related('patient', 'doctor', 'nurse'))


def dashboard(scope: StaffScope, today: Optional[datetime.date] = None) -> dict:
    """Counts and recent items; zeroed with a condition when the nurse is unlinked."""
    if scope.condition:
        return {'totalNurses': 0, 'totalProcedures': 0, 'todayNotes': 0,
                'myProcedures': [], 'recentNotes': [], 'recentVitals': []}
    today = today or timezone.localdate()
    start = timezone.make_aware(datetime.datetime.combine(today, datetime.time.min))
    end = start + datetime.timedelta(days=1)
    notes = notes_queryset(scope)
    procedures = procedures_queryset(scope)
    vitals = vitals_queryset(scope)
    return {
        'totalNurses': Nurse.objects.filter(is_active=True).count(),
        'totalProcedures': procedures.count(),
        'todayNotes': notes.filter(note_date__gte=start, note_date__lt=end).count(),
        'myProcedures': list(procedures.order_by('-procedure_date')[:5]),
        'recentNotes': list(notes.order_by('-note_date')[:5]),
        'recentVitals': list(vitals.order_by('-recorded_date')[:5]),
    }


def _related(model, pk, patient: Patient, scope: StaffScope):
    if not pk:
        return None
    obj = model.objects.filter(pk=pk).first()
    if obj is None:
        raise ValidationError({model.__name__.lower(): f'{model.__name__} {pk} not found'})
    if obj.patient_id != patient.id:
        raise ValidationError({model.__name__.lower(): f'{model.__name__} {pk} belongs to another patient'})
    if not scope.unrestricted and not scope_records(scope, model.objects.filter(pk=pk)).exists():
        raise ValidationError({model.__name__.lower(): f'{model.__name__} {pk} is not assigned to you'})
    return obj


def add_note(scope: StaffScope, *, patient: Patient, data: dict, actor: User) -> NursingNote:
    ensure_patient_in_scope(scope, patient)
    nurse_id = ensure_assignee_allowed(scope, NursingNote, data.get('nurse_id'))
    if nurse_id is None:
        raise ValidationError({'nurseId': 'A nurse is required.'})
    note = NursingNote(
        patient=patient,
        nurse_id=nurse_id,
        procedure=_related(Procedure, data.get('procedure_id'), patient, scope),
        appointment=_related(Appointment, data.get('appointment_id'), patient, scope),
        note_date=data.get('note_date') or timezone.now(),
        notes=data['notes'],
        vitals=data.get('vitals') or '',
        patient_progress=data.get('patient_progress') or '',
        medications_administered=data.get('medications_administered') or '',
        created_by=actor,
    )
    persist(note)
    log_action(user=actor, action='nursing_note_create', object_type='nursing_note', object_id=note.id,
               detail={'patient': patient.id, 'nurse': nurse_id})
    return note


def record_vitals(scope: StaffScope, *, patient: Patient, data: dict, actor: User) -> PatientVital:
    ensure_patient_in_scope(scope, patient)
    nurse_id = ensure_assignee_allowed(scope, PatientVital, data.get('nurse_id'))
    vital = PatientVital(
        patient=patient,
        nurse_id=nurse_id,
        procedure=_related(Procedure, data.get('procedure_id'), patient, scope),
        appointment=_related(Appointment, data.get('appointment_id'), patient, scope),
        recorded_date=data.get('recorded_date') or timezone.now(),
        recorded_by=actor,
        **{k: data.get(k) for k in (
            'blood_pressure_systolic', 'blood_pressure_diastolic', 'temperature', 'pulse_rate',
            'respiratory_rate', 'oxygen_saturation', 'weight', 'height',
        )},
        notes=data.get('notes') or '',
    )
    persist(vital)
    log_action(user=actor, action='vitals_record', object_type='patient_vital', object_id=vital.id,
               detail={'patient': patient.id})
    return vital


def patient_progress(scope: StaffScope, patient: Patient) -> dict:
    ensure_patient_in_scope(scope, patient)
    return {
        'notes': list(notes_queryset(scope).filter(patient=patient).order_by('-note_date')),
        'vitals': list(vitals_queryset(scope).filter(patient=patient).order_by('-recorded_date')),
    }


def update_progress(scope: StaffScope, note: NursingNote, *, progress: str, notes: Optional[str], actor: User) -> NursingNote:
    """Amend the progress text of a note the caller owns."""
    ensure_patient_in_scope(scope, note.patient)
    ensure_can_modify(scope, note)
    note.patient_progress = progress
    fields = ['patient_progress']
    if notes is not None:
        note.notes = notes
        fields.append('notes')
    persist(note, update_fields=fields)
    log_action(user=actor, action='patient_progress_update', object_type='nursing_note', object_id=note.id,
               detail={'patient': note.patient_id})
    logger.info('progress updated on note %s by account %s', note.id, actor.id)
    return note
