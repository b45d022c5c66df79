"""Doctor directory with per-doctor workload and revenue."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from django.db.models import Count, Q, Sum

from care.models import Appointment, Doctor, Procedure
from care.serializers.common import paginate
from care.services.formatting import format_doctor


def doctor_total_revenue(doctor: Doctor) -> Decimal:
    """Fees of completed appointments and procedures, all time."""
    appointments = Appointment.objects.filter(doctor=doctor, status='Completed').aggregate(t=Sum('consultation_fee'))['t']
    procedures = Procedure.objects.filter(doctor=doctor, status='Completed').aggregate(t=Sum('procedure_fee'))['t']
    return (appointments or Decimal('0')) + (procedures or Decimal('0'))


def doctor_appointment_count(doctor: Doctor) -> int:
    return Appointment.objects.filter(doctor=doctor).count()


def doctor_stats(doctor: Doctor) -> dict:
    return {
        'totalAppointments': doctor_appointment_count(doctor),
        'totalRevenue': str(doctor_total_revenue(doctor)),
    }


def _sums_by_doctor(qs, field: str, ids) -> dict:
    rows = qs.filter(doctor_id__in=ids, status='Completed').values('doctor_id').order_by().annotate(t=Sum(field))
    return {r['doctor_id']: r['t'] or Decimal('0') for r in rows}


def list_doctors(*, q: Optional[str] = None, active: Optional[bool] = None,
                 page: Optional[int] = None, page_size: Optional[int] = None) -> tuple[list[dict], int]:
    qs = Doctor.objects.order_by('first_name', 'last_name', 'id')
    if q:
        qs = qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q)
            | Q(specialization__icontains=q) | Q(email__icontains=q)
        )
    if active is not None:
        qs = qs.filter(is_active=active)
    doctors, total = paginate(qs, page, page_size)

    ids = [d.id for d in doctors]
    counts = {
        r['doctor_id']: r['n']
        for r in Appointment.objects.filter(doctor_id__in=ids).values('doctor_id').order_by().annotate(n=Count('id'))
    }
    fees = _sums_by_doctor(Appointment.objects, 'consultation_fee', ids)
    procedure_fees = _sums_by_doctor(Procedure.objects, 'procedure_fee', ids)
    data = [
        format_doctor(d, stats={
            'totalAppointments': counts.get(d.id, 0),
            'totalRevenue': str(fees.get(d.id, Decimal('0')) + procedure_fees.get(d.id, Decimal('0'))),
        })
        for d in doctors
    ]
    return data, total
