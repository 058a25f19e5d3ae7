"""
Authentication for scheduler-triggered endpoints.

The scheduler sends ``Authorization: Bearer <CRON_SECRET_TOKEN>``. There is no
user behind the request; a matching token authenticates it as the cron caller.
"""

import hmac
import logging

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)

CRON_AUTH = 'cron'


class CronTokenAuthentication(BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise AuthenticationFailed('Invalid token header')

        expected = settings.CRON_SECRET_TOKEN
        token = auth[1].decode(errors='replace')
        # An unset token refuses every request
        if not expected or not hmac.compare_digest(token, expected):
            logger.warning("Rejected cron request with invalid token")
            raise AuthenticationFailed('Invalid token')

        return (AnonymousUser(), CRON_AUTH)

    def authenticate_header(self, request):
        return self.keyword


class HasCronToken(BasePermission):
    """Allows only requests authenticated by CronTokenAuthentication."""

    message = 'Cron token required.'

    def has_permission(self, request, view):
        return request.auth == CRON_AUTH
