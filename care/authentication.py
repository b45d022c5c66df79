"""
Token authentication class for the API.

Kept in its own module so that DRF can import it from settings without
pulling in any view code.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token auth using the ``Token`` keyword in the Authorization header."""

    keyword = 'Token'
