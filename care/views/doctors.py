"""
Doctor directory.

Every staff member can read the list (booking needs it); only
administrators add, edit or remove doctors. Rows created here have no
account yet; the account created later for the same email adopts them.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.exceptions import PersistenceFailure
from care.models import Doctor
from care.permissions import IsAdminRole, IsStaff
from care.serializers.doctors import DoctorQuerySerializer, DoctorSerializer
from care.services.audit import log_action
from care.services.doctors import doctor_stats, list_doctors
from care.services.formatting import format_doctor
from care.services.records import persist, remove


def _ensure_admin(request):
    if not IsAdminRole().has_permission(request, None):
        raise PermissionDenied('Only administrators can manage doctors.')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def doctors_list(request):
    if request.method == 'GET':
        q = DoctorQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items, total = list_doctors(
            q=(vd.get('q') or '').strip(), active=vd.get('active'),
            page=vd.get('page'), page_size=vd.get('pageSize'),
        )
        return Response({'ok': True, 'data': items, 'total': total})

    _ensure_admin(request)
    s = DoctorSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = Doctor(**s.validated_data)
    persist(doctor)
    log_action(user=request.user, action='doctor_create', object_type='doctor', object_id=doctor.id,
               detail={'email': doctor.email})
    return Response({'ok': True, 'data': format_doctor(doctor, stats=doctor_stats(doctor))}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def doctors_detail(request, pk: int):
    doctor = Doctor.objects.filter(pk=pk).first()
    if doctor is None:
        raise NotFound('Doctor not found')
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_doctor(doctor, stats=doctor_stats(doctor))})

    _ensure_admin(request)
    if request.method == 'DELETE':
        # procedures cascade with their doctor
        if doctor.procedures.exists():
            raise PersistenceFailure('This doctor has procedures on record. Deactivate the doctor instead.')
        remove(doctor)
        log_action(user=request.user, action='doctor_delete', object_type='doctor', object_id=pk)
        return Response({'ok': True})

    s = DoctorSerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    for field, value in s.validated_data.items():
        setattr(doctor, field, value)
    persist(doctor)
    log_action(user=request.user, action='doctor_update', object_type='doctor', object_id=doctor.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': format_doctor(doctor, stats=doctor_stats(doctor))})
