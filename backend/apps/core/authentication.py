"""
DRF authentication backed by gateway-forwarded principal headers.
"""

import structlog
from django.conf import settings
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication

from .principal import ROLES, Principal

logger = structlog.get_logger(__name__)


class PrincipalHeaderAuthentication(BaseAuthentication):
    """
    Builds a Principal from the X-Principal-Id / X-Principal-Role headers.

    Requests without the id header stay anonymous (and are then rejected by
    IsAuthenticated). Present but malformed headers fail loudly.
    """

    def authenticate(self, request):
        raw_id = request.META.get(settings.SOFTZEN_PRINCIPAL_ID_HEADER)
        if not raw_id:
            return None

        raw_role = request.META.get(settings.SOFTZEN_PRINCIPAL_ROLE_HEADER, "")
        role = raw_role.strip().lower()

        try:
            principal_id = int(raw_id)
        except ValueError:
            logger.warning("invalid_principal_header", reason="non_numeric_id")
            raise exceptions.AuthenticationFailed("Invalid principal id")

        if role not in ROLES:
            logger.warning("invalid_principal_header", reason="unknown_role")
            raise exceptions.AuthenticationFailed("Invalid principal role")

        return Principal(id=principal_id, role=role), None

    def authenticate_header(self, request):
        # Makes DRF answer 401 instead of 403 for anonymous requests
        return "Principal"
