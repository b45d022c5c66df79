"""
Nursing endpoints: dashboard, notes, vitals and patient progress.

Everything here is filtered to the signed-in nurse's own records. A
nurse account whose profile cannot be resolved gets empty results and
a ``condition`` explaining why, never an error page.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import NursingNote, Patient
from care.permissions import IsNurse
from care.serializers.common import DateRangeQuerySerializer, paginate
from care.serializers.records import NursingNoteSerializer, ProgressQuerySerializer, ProgressUpdateSerializer, VitalSerializer
from care.services import nursing
from care.services.doctor_dashboard import filter_by_dates
from care.services.formatting import format_note, format_procedure, format_scope, format_vital
from care.services.scope import form_options, get_visible, scope_for


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsNurse])
def nursing_dashboard(request):
    scope = scope_for(request.user)
    data = nursing.dashboard(scope)
    return Response({
        'ok': True,
        'data': {
            'totalNurses': data['totalNurses'],
            'totalProcedures': data['totalProcedures'],
            'todayNotes': data['todayNotes'],
            'myProcedures': [format_procedure(p) for p in data['myProcedures']],
            'recentNotes': [format_note(n) for n in data['recentNotes']],
            'recentVitals': [format_vital(v) for v in data['recentVitals']],
        },
        'scope': format_scope(scope),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsNurse])
def nursing_notes(request):
    scope = scope_for(request.user)
    if request.method == 'GET':
        q = DateRangeQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = filter_by_dates(nursing.notes_queryset(scope), 'note_date', q.validated_data.get('start'), q.validated_data.get('end'))
        patient_id = request.query_params.get('patientId')
        if patient_id and patient_id.isdigit():
            qs = qs.filter(patient_id=int(patient_id))
        items, total = paginate(qs.order_by('-note_date'), q.validated_data.get('page'), q.validated_data.get('pageSize'))
        return Response({'ok': True, 'data': [format_note(n) for n in items], 'total': total, 'scope': scope.condition})

    s = NursingNoteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    patient = data.pop('patient')
    note = nursing.add_note(scope, patient=patient, data=data, actor=request.user)
    return Response({'ok': True, 'data': format_note(note)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsNurse])
def nursing_note_detail(request, pk: int):
    scope = scope_for(request.user)
    note = get_visible(scope, nursing.notes_queryset(scope), pk)
    return Response({'ok': True, 'data': format_note(note)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsNurse])
def nursing_form_options(request):
    scope = scope_for(request.user)
    return Response({'ok': True, 'data': form_options(scope), 'scope': format_scope(scope)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsNurse])
def nursing_vitals(request):
    scope = scope_for(request.user)
    if request.method == 'GET':
        qs = nursing.vitals_queryset(scope)
        patient_id = request.query_params.get('patientId')
        if patient_id and patient_id.isdigit():
            qs = qs.filter(patient_id=int(patient_id))
        return Response({'ok': True, 'data': [format_vital(v) for v in qs.order_by('-recorded_date')[:200]], 'scope': scope.condition})

    s = VitalSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    patient = data.pop('patient')
    vital = nursing.record_vitals(scope, patient=patient, data=data, actor=request.user)
    return Response({'ok': True, 'data': format_vital(vital)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsNurse])
def nursing_progress(request):
    """GET a patient's notes and vitals; POST an amended progress entry on an own note."""
    scope = scope_for(request.user)
    if request.method == 'GET':
        q = ProgressQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        patient = get_object_or_404(Patient, pk=q.validated_data['patientId'])
        progress = nursing.patient_progress(scope, patient)
        return Response({
            'ok': True,
            'data': {
                'patient': {'id': patient.id, 'name': patient.full_name, 'mrNumber': patient.mr_number},
                'notes': [format_note(n) for n in progress['notes']],
                'vitals': [format_vital(v) for v in progress['vitals']],
            },
        })

    s = ProgressUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    note = get_object_or_404(NursingNote.objects.select_related('patient', 'nurse'), pk=s.validated_data['noteId'])
    note = nursing.update_progress(
        scope, note, progress=s.validated_data['patientProgress'], notes=s.validated_data.get('notes'), actor=request.user,
    )
    return Response({'ok': True, 'data': format_note(note)})
