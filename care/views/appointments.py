"""
Appointment and procedure views.

Listing goes through the caller's scope: the front desk and admins
see every record, doctors and nurses only those assigned to them.
Doctors and nurses may edit their own records but never hand them to
another staff member.
"""
from __future__ import annotations

import datetime

from django.db.models import Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from care.models import Appointment, Procedure, User
from care.permissions import IsAdminRole, IsFrontDesk, IsStaff
from care.serializers.common import DateRangeQuerySerializer, paginate
from care.serializers.records import AppointmentSerializer, NotifySerializer, ProcedureSerializer
from care.services.audit import log_action
from care.services.doctor_dashboard import filter_by_dates
from care.services.formatting import format_appointment, format_procedure
from care.services.messaging import notify_appointment
from care.services.records import persist, remove
from care.services.scope import (
    assignee_field,
    ensure_assignee_allowed,
    ensure_can_modify,
    ensure_patient_in_scope,
    get_visible,
    scope_for,
    visible_records,
)

APPOINTMENTS = Appointment.objects.select_related('patient', 'doctor', 'nurse')
PROCEDURES = Procedure.objects.select_related('patient', 'doctor', 'nurse')


def _search(qs, term: str):
    if not term:
        return qs
    return qs.filter(
        Q(patient__first_name__icontains=term) | Q(patient__last_name__icontains=term)
        | Q(patient__mr_number__icontains=term)
    )


def _apply(instance, scope, vd: dict):
    """Copy validated fields onto ``instance``, guarding the assignee."""
    field = assignee_field(scope, type(instance))
    if field and field in vd and not scope.registry:
        requested = vd[field]
        ensure_assignee_allowed(scope, type(instance), requested.pk if requested else None)
    for key, value in vd.items():
        setattr(instance, key, value)
    if field and not scope.registry and getattr(instance, f'{field}_id') is None:
        setattr(instance, field, scope.profile)
    return instance


def _list(request, base, date_field: str, formatter):
    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    scope = scope_for(request.user)
    qs = filter_by_dates(visible_records(scope, base), date_field, vd.get('start'), vd.get('end'))
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    qs = _search(qs, (vd.get('q') or '').strip()).order_by(f'-{date_field}')
    items, total = paginate(qs, vd.get('page'), vd.get('pageSize'))
    return Response({'ok': True, 'data': [formatter(x) for x in items], 'total': total, 'scope': scope.condition})


# ---------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointments_list(request):
    if request.method == 'GET':
        return _list(request, APPOINTMENTS, 'appointment_date', format_appointment)

    if not IsFrontDesk().has_permission(request, None):
        raise PermissionDenied('Only reception staff and administrators can book appointments.')
    s = AppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appt = Appointment(created_by=request.user, **vd)
    if 'consultation_fee' not in vd and appt.doctor is not None:
        appt.consultation_fee = appt.doctor.consultation_fee
    persist(appt)
    log_action(user=request.user, action='appointment_create', object_type='appointment', object_id=appt.id,
               detail={'patient': appt.patient_id, 'doctor': appt.doctor_id, 'nurse': appt.nurse_id})
    return Response({'ok': True, 'data': format_appointment(appt)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def appointments_today(request):
    scope = scope_for(request.user)
    start = timezone.make_aware(datetime.datetime.combine(timezone.localdate(), datetime.time.min))
    qs = visible_records(scope, APPOINTMENTS).filter(
        appointment_date__gte=start, appointment_date__lt=start + datetime.timedelta(days=1),
    ).order_by('appointment_date')
    return Response({'ok': True, 'data': [format_appointment(a) for a in qs], 'scope': scope.condition})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_detail(request, pk: int):
    scope = scope_for(request.user)
    appt = get_visible(scope, APPOINTMENTS, pk)

    if request.method == 'GET':
        return Response({'ok': True, 'data': format_appointment(appt)})

    if request.method == 'DELETE':
        if not IsFrontDesk().has_permission(request, None):
            raise PermissionDenied('Only reception staff and administrators can delete appointments.')
        remove(appt)
        log_action(user=request.user, action='appointment_delete', object_type='appointment', object_id=pk)
        return Response({'ok': True})

    if scope.role in (User.ROLE_ACCOUNTS, User.ROLE_LAB):
        raise PermissionDenied('Your role cannot edit appointments.')
    ensure_can_modify(scope, appt)
    s = AppointmentSerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    if not scope.registry and 'patient' in s.validated_data and s.validated_data['patient'].pk != appt.patient_id:
        raise ValidationError({'patientId': 'The patient of an appointment cannot be changed.'})
    _apply(appt, scope, s.validated_data)
    persist(appt)
    log_action(user=request.user, action='appointment_update', object_type='appointment', object_id=appt.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': format_appointment(appt)})


class NotifyThrottle(UserRateThrottle):
    scope = 'notify'


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
@throttle_classes([NotifyThrottle])
def appointment_notify(request, pk: int):
    """Send the appointment reminder by SMS or WhatsApp."""
    scope = scope_for(request.user)
    appt = get_visible(scope, APPOINTMENTS, pk)
    if not (IsFrontDesk().has_permission(request, None) or scope.role == User.ROLE_DOCTOR):
        raise PermissionDenied('Your role cannot send reminders.')
    s = NotifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    channel = s.validated_data['channel']
    sent = notify_appointment(appt, channel)
    log_action(user=request.user, action='appointment_notify', object_type='appointment', object_id=appt.id,
               detail={'channel': channel, 'sent': sent})
    if not sent:
        return Response({'ok': False, 'error': {'code': 'not_sent', 'message': f'{channel.upper()} could not be sent.'}}, status=status.HTTP_502_BAD_GATEWAY)
    return Response({'ok': True, 'data': format_appointment(appt)})


# ---------------------------------------------------------------------
# Procedures
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def procedures_list(request):
    if request.method == 'GET':
        return _list(request, PROCEDURES, 'procedure_date', format_procedure)

    scope = scope_for(request.user)
    if not (IsFrontDesk().has_permission(request, None) or scope.role == User.ROLE_DOCTOR):
        raise PermissionDenied('Only doctors, reception staff and administrators can schedule procedures.')
    s = ProcedureSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ensure_patient_in_scope(scope, s.validated_data['patient'])
    proc = _apply(Procedure(created_by=request.user), scope, s.validated_data)
    if proc.doctor_id is None:
        raise ValidationError({'doctorId': 'A doctor is required.'})
    persist(proc)
    log_action(user=request.user, action='procedure_create', object_type='procedure', object_id=proc.id,
               detail={'patient': proc.patient_id, 'doctor': proc.doctor_id, 'nurse': proc.nurse_id})
    return Response({'ok': True, 'data': format_procedure(proc)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def procedure_detail(request, pk: int):
    scope = scope_for(request.user)
    proc = get_visible(scope, PROCEDURES, pk)

    if request.method == 'GET':
        return Response({'ok': True, 'data': format_procedure(proc)})

    if request.method == 'DELETE':
        if not IsAdminRole().has_permission(request, None):
            raise PermissionDenied('Only administrators can delete procedures.')
        remove(proc)
        log_action(user=request.user, action='procedure_delete', object_type='procedure', object_id=pk)
        return Response({'ok': True})

    if scope.role in (User.ROLE_ACCOUNTS, User.ROLE_LAB):
        raise PermissionDenied('Your role cannot edit procedures.')
    ensure_can_modify(scope, proc)
    s = ProcedureSerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    if not scope.registry and 'patient' in s.validated_data and s.validated_data['patient'].pk != proc.patient_id:
        raise ValidationError({'patientId': 'The patient of a procedure cannot be changed.'})
    _apply(proc, scope, s.validated_data)
    persist(proc)
    log_action(user=request.user, action='procedure_update', object_type='procedure', object_id=proc.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': format_procedure(proc)})
