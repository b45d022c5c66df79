"""
Patient registry views.

Front-desk roles and admins see the whole registry. Doctors and nurses
only see patients they have an appointment, procedure, note or vitals
entry with. Registration and edits are front-desk work.
"""
from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Patient
from care.permissions import IsAdminRole, IsFrontDesk, IsStaff
from care.serializers.common import PageQuerySerializer, paginate
from care.serializers.patient import PatientSerializer
from care.services.audit import log_action
from care.services.formatting import format_patient
from care.services.records import persist, remove
from care.services.scope import ensure_patient_in_scope, scope_for, visible_patients


def _ensure_desk(request):
    if not (IsFrontDesk().has_permission(request, None)):
        raise PermissionDenied('Only reception staff and administrators can change the patient registry.')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def patients_list(request):
    if request.method == 'GET':
        q = PageQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        scope = scope_for(request.user)
        qs = visible_patients(scope).order_by('-created_at')
        term = (q.validated_data.get('q') or '').strip()
        if term:
            qs = qs.filter(
                Q(first_name__icontains=term) | Q(last_name__icontains=term)
                | Q(mr_number__icontains=term) | Q(contact_number__icontains=term)
            )
        items, total = paginate(qs, q.validated_data.get('page'), q.validated_data.get('pageSize'))
        return Response({'ok': True, 'data': [format_patient(p) for p in items], 'total': total, 'scope': scope.condition})

    _ensure_desk(request)
    s = PatientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = Patient(created_by=request.user, **s.validated_data)
    persist(patient)
    log_action(user=request.user, action='patient_create', object_type='patient', object_id=patient.id,
               detail={'mrNumber': patient.mr_number})
    return Response({'ok': True, 'data': format_patient(patient, full=True)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def patient_detail(request, pk: int):
    patient = get_object_or_404(Patient, pk=pk)
    scope = scope_for(request.user)
    ensure_patient_in_scope(scope, patient)

    if request.method == 'GET':
        return Response({'ok': True, 'data': format_patient(patient, full=True)})

    if request.method == 'DELETE':
        if not IsAdminRole().has_permission(request, None):
            raise PermissionDenied('Only administrators can delete patients.')
        remove(patient)
        log_action(user=request.user, action='patient_delete', object_type='patient', object_id=pk,
                   detail={'mrNumber': patient.mr_number})
        return Response({'ok': True})

    _ensure_desk(request)
    s = PatientSerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    for field, value in s.validated_data.items():
        setattr(patient, field, value)
    persist(patient)
    log_action(user=request.user, action='patient_update', object_type='patient', object_id=patient.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': format_patient(patient, full=True)})
