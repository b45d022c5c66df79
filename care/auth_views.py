"""
Authentication views.

Login issues both a DRF token and a JWT pair and reports the caller's
resolved staff profile, so the frontend knows straight away whether
role-scoped pages will have data.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from care.models import User
from care.serializers.auth import LoginSerializer
from care.services.audit import client_ip, log_action
from care.services.formatting import format_scope, format_user
from care.services.scope import scope_for

logger = logging.getLogger(__name__)

# role -> (frontend landing route, dashboard endpoint)
LANDING = {
    User.ROLE_ADMIN: ('/admin/dashboard', '/api/users'),
    User.ROLE_DOCTOR: ('/doctor/dashboard', '/api/doctor/dashboard'),
    User.ROLE_NURSE: ('/nursing/dashboard', '/api/nursing/dashboard'),
    User.ROLE_RECEPTION: ('/appointments', '/api/appointments/today'),
    User.ROLE_ACCOUNTS: ('/transactions', '/api/transactions'),
    User.ROLE_LAB: ('/lab/tests', '/api/lab/tests'),
    User.ROLE_PATIENT: ('/patient', '/api/auth/me'),
}


class LoginThrottle(AnonRateThrottle):
    scope = 'login'


def _login_name(identifier: str) -> str:
    """Accept an email address in place of the username."""
    if '@' in identifier and not User.objects.filter(username=identifier).exists():
        match = User.objects.filter(email__iexact=identifier).only('username').first()
        if match:
            return match.username
    return identifier


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = _login_name(s.validated_data['username'])
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': client_ip(request)})
        logger.info('failed login for %s', username)
        return Response({'ok': False, 'error': {'code': 'invalid_credentials', 'message': 'Invalid username or password'}}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': client_ip(request)})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    scope = scope_for(user)

    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': format_user(user),
        'scope': format_scope(scope),
        'landing': LANDING.get(user.role, ('/', None))[0],
    }, status=200)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    scope = scope_for(request.user)
    return Response({'ok': True, 'data': {'user': format_user(request.user), 'scope': format_scope(scope)}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def home_view(request):
    """Where the signed-in role should land."""
    role = request.user.role
    landing, endpoint = LANDING.get(role, ('/', None))
    return Response({'ok': True, 'data': {'role': role, 'landing': landing, 'endpoint': endpoint}})


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    data = dict(s.validated_data)
    data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return Response({'ok': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the caller."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as e:
            return Response({'ok': False, 'error': {'code': 'invalid_token', 'message': str(e)}}, status=400)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
