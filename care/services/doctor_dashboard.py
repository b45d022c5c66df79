"""Statistics and history for the signed-in doctor."""
from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Optional

from django.db.models import Sum
from django.utils import timezone

from care.models import Appointment, Patient, Procedure
from care.services.scope import StaffScope, ensure_patient_in_scope, scope_patients, scope_records


def _day_bounds(day: datetime.date):
    start = timezone.make_aware(datetime.datetime.combine(day, datetime.time.min))
    return start, start + datetime.timedelta(days=1)


def _month_start(day: datetime.date):
    return timezone.make_aware(datetime.datetime.combine(day.replace(day=1), datetime.time.min))


def _total(qs, field: str) -> Decimal:
    return qs.aggregate(total=Sum(field))['total'] or Decimal('0')


def doctor_appointments(scope: StaffScope):
    return scope_records(scope, Appointment.objects.select_related('patient', 'doctor', 'nurse'))


def doctor_procedures(scope: StaffScope):
    return scope_records(scope, Procedure.objects.select_related('patient', 'doctor', 'nurse'))


def dashboard_stats(scope: StaffScope, today: Optional[datetime.date] = None) -> dict:
    today = today or timezone.localdate()
    day_start, day_end = _day_bounds(today)
    month_start = _month_start(today)

    appointments = doctor_appointments(scope)
    procedures = doctor_procedures(scope)
    month_appointments = appointments.filter(appointment_date__gte=month_start)
    month_procedures = procedures.filter(procedure_date__gte=month_start)

    revenue = (
        _total(month_appointments.filter(status='Completed'), 'consultation_fee')
        + _total(month_procedures.filter(status='Completed'), 'procedure_fee')
    )
    return {
        'totalAppointments': appointments.count(),
        'todayAppointments': appointments.filter(appointment_date__gte=day_start, appointment_date__lt=day_end).count(),
        'thisMonthAppointments': month_appointments.count(),
        'totalProcedures': procedures.count(),
        'totalPatients': scope_patients(scope).count(),
        'monthlyRevenue': str(revenue),
    }


def upcoming_appointments(scope: StaffScope, limit: int = 10):
    return doctor_appointments(scope).filter(
        appointment_date__gte=timezone.now(),
    ).exclude(status='Cancelled').order_by('appointment_date')[:limit]


def filter_by_dates(qs, field: str, start: Optional[datetime.date] = None, end: Optional[datetime.date] = None):
    if start:
        qs = qs.filter(**{f'{field}__gte': _day_bounds(start)[0]})
    if end:
        qs = qs.filter(**{f'{field}__lt': _day_bounds(end)[1]})
    return qs


def patient_history(scope: StaffScope, patient: Patient) -> dict:
    """Appointments and procedures of ``patient`` that involve this doctor."""
    ensure_patient_in_scope(scope, patient)
    return {
        'appointments': doctor_appointments(scope).filter(patient=patient).order_by('-appointment_date'),
        'procedures': doctor_procedures(scope).filter(patient=patient).order_by('-procedure_date'),
    }
