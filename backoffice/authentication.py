"""
Token authentication for the back-office API.

Clients send ``Authorization: Token <key>``.  Tokens are issued out of
band (Django admin or ``manage.py drf_create_token``); this project has
no login endpoint of its own.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication under a stable, project-local import path."""

    keyword = 'Token'
