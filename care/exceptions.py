"""
API error types and the unified DRF exception handler.

Every error leaves the API as ``{"ok": false, "error": {"code", "message"}}``.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class PersistenceFailure(APIException):
    """A write was rejected by the database for a reason other than a missing row."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The record could not be saved. Please retry.'
    default_code = 'persistence_failure'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view').__class__.__name__ if context else '?', exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    code = getattr(exc, 'default_code', None) or 'api_error'
    if hasattr(exc, 'get_codes'):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)
