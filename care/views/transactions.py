"""Billing transactions and invoices."""
from __future__ import annotations

from django.db.models import Q, Sum
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Transaction, User
from care.permissions import IsBilling
from care.serializers.billing import TransactionSerializer
from care.serializers.common import DateRangeQuerySerializer, paginate
from care.services.audit import log_action
from care.services.billing import generate_invoice
from care.services.doctor_dashboard import filter_by_dates
from care.services.formatting import format_transaction
from care.services.records import persist, remove

TRANSACTIONS = Transaction.objects.select_related('patient')


def _get(pk: int) -> Transaction:
    txn = TRANSACTIONS.filter(pk=pk).first()
    if txn is None:
        raise NotFound('Transaction not found')
    return txn


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBilling])
def transactions_list(request):
    if request.method == 'GET':
        q = DateRangeQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        qs = filter_by_dates(TRANSACTIONS, 'transaction_date', vd.get('start'), vd.get('end'))
        if vd.get('status'):
            qs = qs.filter(status=vd['status'])
        ttype = request.query_params.get('type')
        if ttype:
            qs = qs.filter(transaction_type=ttype)
        patient_id = request.query_params.get('patientId')
        if patient_id and patient_id.isdigit():
            qs = qs.filter(patient_id=int(patient_id))
        term = (vd.get('q') or '').strip()
        if term:
            qs = qs.filter(
                Q(patient__first_name__icontains=term) | Q(patient__last_name__icontains=term)
                | Q(patient__mr_number__icontains=term) | Q(reference_number__icontains=term)
            )
        paid = qs.filter(status='Paid').aggregate(total=Sum('amount'))['total']
        items, total = paginate(qs.order_by('-transaction_date'), vd.get('page'), vd.get('pageSize'))
        return Response({
            'ok': True,
            'data': [format_transaction(t) for t in items],
            'total': total,
            'paidTotal': str(paid or 0),
        })

    s = TransactionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    txn = Transaction(created_by=request.user, **s.validated_data)
    persist(txn)
    log_action(user=request.user, action='transaction_create', object_type='transaction', object_id=txn.id,
               detail={'patient': txn.patient_id, 'amount': str(txn.amount), 'type': txn.transaction_type})
    return Response({'ok': True, 'data': format_transaction(txn)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsBilling])
def transaction_detail(request, pk: int):
    txn = _get(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_transaction(txn)})

    if request.method == 'DELETE':
        if request.user.role != User.ROLE_ADMIN:
            raise PermissionDenied('Only administrators can delete transactions.')
        remove(txn)
        log_action(user=request.user, action='transaction_delete', object_type='transaction', object_id=pk)
        return Response({'ok': True})

    s = TransactionSerializer(data=request.data, partial=request.method == 'PATCH', context={'instance': txn})
    s.is_valid(raise_exception=True)
    for field, value in s.validated_data.items():
        setattr(txn, field, value)
    persist(txn)
    log_action(user=request.user, action='transaction_update', object_type='transaction', object_id=txn.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': format_transaction(txn)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBilling])
def transaction_invoice(request, pk: int):
    txn = _get(pk)
    url = generate_invoice(txn)
    log_action(user=request.user, action='invoice_generate', object_type='transaction', object_id=txn.id,
               detail={'path': txn.invoice_path})
    return Response({'ok': True, 'data': {'invoiceNumber': txn.invoice_number, 'url': url, 'path': txn.invoice_path}})
