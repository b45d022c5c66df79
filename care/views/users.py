"""
User administration.

Admins create, edit and delete login accounts. Every create or edit
also provisions the staff profile for the account's role. Profile
trouble never fails the request: the account is saved and the reason
is returned in ``warnings``.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.crypto import get_random_string
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import User
from care.permissions import IsAdminRole
from care.serializers.common import PageQuerySerializer, paginate
from care.serializers.users import UserCreateSerializer, UserWriteSerializer, split_profile_fields
from care.services.audit import log_action
from care.services.formatting import format_user
from care.services.identity import kind_for_role, profile_summary, resolve
from care.services.provisioning import ensure_profile
from care.services.records import persist, remove

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS = ('first_name', 'last_name', 'email', 'phone_number', 'role', 'is_active')


def _serialize(user: User, *, with_profile: bool = False) -> dict:
    data = format_user(user)
    if with_profile:
        kind = kind_for_role(user.role)
        data['profile'] = profile_summary(resolve(user, kind)) if kind else None
    return data


def _unique_username(base: str) -> str:
    base = (base or 'user').split('@')[0][:140] or 'user'
    candidate = base
    while User.objects.filter(username=candidate).exists():
        candidate = f'{base}{get_random_string(4, "0123456789")}'
    return candidate


def _provision(user: User, profile_fields: dict, actor: User) -> list[str]:
    result = ensure_profile(user, user.role, profile_fields, actor=actor)
    return [result.warning] if result.warning else []


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users_list(request):
    if request.method == 'GET':
        q = PageQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = User.objects.all().order_by('-date_joined')
        term = (q.validated_data.get('q') or '').strip()
        if term:
            qs = qs.filter(
                Q(username__icontains=term) | Q(email__icontains=term)
                | Q(first_name__icontains=term) | Q(last_name__icontains=term)
            )
        role = request.query_params.get('role')
        if role:
            qs = qs.filter(role=role)
        items, total = paginate(qs, q.validated_data.get('page'), q.validated_data.get('pageSize'))
        return Response({'ok': True, 'data': [_serialize(u) for u in items], 'total': total})

    s = UserCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    account, profile_fields = split_profile_fields(dict(s.validated_data))
    password = account.pop('password')
    username = account.pop('username', '') or _unique_username(account['email'])
    if User.objects.filter(username=username).exists():
        return Response({'ok': False, 'error': {'code': 'duplicate_username', 'message': 'Username is already taken.'}}, status=400)

    with transaction.atomic():
        user = User(username=username, **{k: v for k, v in account.items() if k in ACCOUNT_FIELDS})
        user.set_password(password)
        persist(user)
        log_action(user=request.user, action='user_create', object_type='user', object_id=user.id,
                   detail={'role': user.role})
    logger.info('account %s (%s) created by %s', user.id, user.role, request.user.id)
    warnings = _provision(user, profile_fields, request.user)
    return Response({'ok': True, 'data': _serialize(user, with_profile=True), 'warnings': warnings}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk: int):
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response({'ok': True, 'data': _serialize(user, with_profile=True)})

    if request.method == 'DELETE':
        if user.pk == request.user.pk:
            raise PermissionDenied('You cannot delete your own account.')
        remove(user)
        log_action(user=request.user, action='user_delete', object_type='user', object_id=pk,
                   detail={'username': user.username, 'role': user.role})
        return Response({'ok': True})

    s = UserWriteSerializer(data=request.data, partial=request.method == 'PATCH', context={'instance': user})
    s.is_valid(raise_exception=True)
    account, profile_fields = split_profile_fields(dict(s.validated_data))
    password = account.pop('password', None)
    username = account.pop('username', None)
    previous_role = user.role

    with transaction.atomic():
        for field in ACCOUNT_FIELDS:
            if field in account:
                setattr(user, field, account[field])
        if username and username != user.username:
            if User.objects.filter(username=username).exclude(pk=user.pk).exists():
                return Response({'ok': False, 'error': {'code': 'duplicate_username', 'message': 'Username is already taken.'}}, status=400)
            user.username = username
        if password:
            user.set_password(password)
        persist(user)
        log_action(user=request.user, action='user_update', object_type='user', object_id=user.id,
                   detail={'role': user.role, 'previousRole': previous_role, 'passwordChanged': bool(password)})
    if previous_role != user.role:
        logger.info('account %s role changed %s -> %s', user.id, previous_role, user.role)
    warnings = _provision(user, profile_fields, request.user)
    return Response({'ok': True, 'data': _serialize(user, with_profile=True), 'warnings': warnings})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_repair_profile(request, pk: int):
    """Provision the profile a staff account is missing (or refresh it)."""
    user = get_object_or_404(User, pk=pk)
    result = ensure_profile(user, user.role, actor=request.user)
    return Response({
        'ok': True,
        'data': {
            'created': result.created,
            'updated': result.updated,
            'profile': profile_summary(result.profile),
        },
        'warnings': [result.warning] if result.warning else [],
    })
