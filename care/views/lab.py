"""Lab test categories, lab tests and report uploads."""
from __future__ import annotations

from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import LabTest, LabTestCategory, User
from care.permissions import IsLab, IsLabOrClinical, IsStaff
from care.serializers.billing import LabCategorySerializer, LabReportSerializer, LabTestSerializer
from care.serializers.common import DateRangeQuerySerializer, paginate
from care.services.audit import log_action
from care.services.doctor_dashboard import filter_by_dates
from care.services.formatting import format_category, format_lab_test
from care.services.lab import attach_report
from care.services.records import persist, remove
from care.services.scope import ensure_patient_in_scope, scope_for, scope_patients

LAB_TESTS = LabTest.objects.select_related('patient', 'category', 'assigned_to')


def _ensure_lab(request, what: str):
    if not IsLab().has_permission(request, None):
        raise PermissionDenied(f'Only lab staff and administrators can {what}.')


def _tests_for(scope):
    # doctors see tests of their own patients; the registry sees all
    if scope.registry:
        return LAB_TESTS
    return LAB_TESTS.filter(patient__in=scope_patients(scope))


def _get_test(scope, pk: int) -> LabTest:
    test = _tests_for(scope).filter(pk=pk).first()
    if test is None:
        raise NotFound('LabTest not found')
    return test


# ---------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def lab_categories(request):
    if request.method == 'GET':
        qs = LabTestCategory.objects.order_by('name')
        if request.query_params.get('active') in ('1', 'true'):
            qs = qs.filter(is_active=True)
        return Response({'ok': True, 'data': [format_category(c) for c in qs]})

    _ensure_lab(request, 'manage test categories')
    s = LabCategorySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    category = LabTestCategory(**s.validated_data)
    persist(category)
    log_action(user=request.user, action='lab_category_create', object_type='lab_category', object_id=category.id,
               detail={'name': category.name})
    return Response({'ok': True, 'data': format_category(category)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def lab_category_detail(request, pk: int):
    category = LabTestCategory.objects.filter(pk=pk).first()
    if category is None:
        raise NotFound('LabTestCategory not found')
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_category(category)})

    _ensure_lab(request, 'manage test categories')
    if request.method == 'DELETE':
        remove(category)
        log_action(user=request.user, action='lab_category_delete', object_type='lab_category', object_id=pk)
        return Response({'ok': True})

    s = LabCategorySerializer(data=request.data, partial=request.method == 'PATCH', context={'instance': category})
    s.is_valid(raise_exception=True)
    for field, value in s.validated_data.items():
        setattr(category, field, value)
    persist(category)
    log_action(user=request.user, action='lab_category_update', object_type='lab_category', object_id=category.id)
    return Response({'ok': True, 'data': format_category(category)})


# ---------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------
def _can_order(scope) -> bool:
    return scope.role in (User.ROLE_ADMIN, User.ROLE_LAB, User.ROLE_RECEPTION, User.ROLE_DOCTOR)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsLabOrClinical])
def lab_tests(request):
    scope = scope_for(request.user)
    if request.method == 'GET':
        q = DateRangeQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        qs = filter_by_dates(_tests_for(scope), 'test_date', vd.get('start'), vd.get('end'))
        if vd.get('status'):
            qs = qs.filter(status=vd['status'])
        term = (vd.get('q') or '').strip()
        if term:
            qs = qs.filter(
                Q(test_name__icontains=term) | Q(patient__first_name__icontains=term)
                | Q(patient__last_name__icontains=term) | Q(patient__mr_number__icontains=term)
            )
        if request.query_params.get('mine') in ('1', 'true'):
            qs = qs.filter(assigned_to=request.user)
        items, total = paginate(qs.order_by('-test_date'), vd.get('page'), vd.get('pageSize'))
        return Response({'ok': True, 'data': [format_lab_test(t) for t in items], 'total': total, 'scope': scope.condition})

    if not _can_order(scope):
        raise PermissionDenied('Your role cannot order lab tests.')
    s = LabTestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ensure_patient_in_scope(scope, s.validated_data['patient'])
    test = LabTest(created_by=request.user, **s.validated_data)
    persist(test)
    log_action(user=request.user, action='lab_test_create', object_type='lab_test', object_id=test.id,
               detail={'patient': test.patient_id, 'category': test.category_id})
    return Response({'ok': True, 'data': format_lab_test(test)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsLabOrClinical])
def lab_test_detail(request, pk: int):
    scope = scope_for(request.user)
    test = _get_test(scope, pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_lab_test(test)})

    if request.method == 'DELETE':
        if scope.role != User.ROLE_ADMIN:
            raise PermissionDenied('Only administrators can delete lab tests.')
        if test.report_file:
            test.report_file.delete(save=False)
        remove(test)
        log_action(user=request.user, action='lab_test_delete', object_type='lab_test', object_id=pk)
        return Response({'ok': True})

    if scope.role not in (User.ROLE_ADMIN, User.ROLE_LAB, User.ROLE_RECEPTION):
        raise PermissionDenied('Your role cannot edit lab tests.')
    s = LabTestSerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    for field, value in s.validated_data.items():
        setattr(test, field, value)
    persist(test)
    log_action(user=request.user, action='lab_test_update', object_type='lab_test', object_id=test.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': format_lab_test(test)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsLab])
@parser_classes([MultiPartParser, FormParser])
def lab_test_report(request, pk: int):
    """Upload the report file for a lab test and mark it completed."""
    scope = scope_for(request.user)
    test = _get_test(scope, pk)
    s = LabReportSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    test = attach_report(test, s.validated_data['file'], notes=s.validated_data.get('notes'), actor=request.user)
    return Response({'ok': True, 'data': format_lab_test(test)})
