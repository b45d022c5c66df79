"""Doctor dashboard, own profile and patient history."""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Patient
from care.permissions import IsDoctor
from care.serializers.common import DateRangeQuerySerializer, paginate
from care.serializers.doctors import DoctorProfileSerializer
from care.services import doctor_dashboard as dash
from care.services.audit import log_action
from care.services.formatting import format_appointment, format_doctor, format_patient, format_procedure, format_scope
from care.services.records import persist
from care.services.scope import scope_for, scope_patients


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_dashboard(request):
    scope = scope_for(request.user)
    return Response({
        'ok': True,
        'data': {
            'stats': dash.dashboard_stats(scope),
            'upcomingAppointments': [format_appointment(a) for a in dash.upcoming_appointments(scope)],
        },
        'scope': format_scope(scope),
    })


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_profile(request):
    scope = scope_for(request.user)
    doctor = scope.profile
    if doctor is None or scope.unrestricted:
        raise NotFound(scope.message or 'No doctor profile is linked to this account.')
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_doctor(doctor)})
    s = DoctorProfileSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    for field, value in s.validated_data.items():
        setattr(doctor, field, value)
    persist(doctor)
    log_action(user=request.user, action='doctor_profile_update', object_type='doctor', object_id=doctor.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': format_doctor(doctor)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_appointments(request):
    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    scope = scope_for(request.user)
    qs = dash.filter_by_dates(dash.doctor_appointments(scope), 'appointment_date', vd.get('start'), vd.get('end'))
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    items, total = paginate(qs.order_by('-appointment_date'), vd.get('page'), vd.get('pageSize'))
    return Response({'ok': True, 'data': [format_appointment(a) for a in items], 'total': total, 'scope': scope.condition})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_procedures(request):
    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    scope = scope_for(request.user)
    qs = dash.filter_by_dates(dash.doctor_procedures(scope), 'procedure_date', vd.get('start'), vd.get('end'))
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    items, total = paginate(qs.order_by('-procedure_date'), vd.get('page'), vd.get('pageSize'))
    return Response({'ok': True, 'data': [format_procedure(p) for p in items], 'total': total, 'scope': scope.condition})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_patients(request):
    scope = scope_for(request.user)
    qs = scope_patients(scope).order_by('first_name', 'last_name')
    return Response({'ok': True, 'data': [format_patient(p) for p in qs], 'scope': scope.condition})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_patient_history(request, pk: int):
    scope = scope_for(request.user)
    patient = get_object_or_404(Patient, pk=pk)
    history = dash.patient_history(scope, patient)
    return Response({
        'ok': True,
        'data': {
            'patient': format_patient(patient, full=True),
            'appointments': [format_appointment(a) for a in history['appointments']],
            'procedures': [format_procedure(p) for p in history['procedures']],
        },
    })
