"""
Authenticated principal.

Identity is owned by the auth gateway: by the time a request reaches this
service the token has been verified and only ``{id, role}`` is forwarded.
"""

from dataclasses import dataclass

from .exceptions import PermissionDeniedError

ROLE_INSTRUCTOR = "instructor"
ROLE_PATIENT = "patient"
ROLES = (ROLE_INSTRUCTOR, ROLE_PATIENT)


@dataclass(frozen=True)
class Principal:
    id: int
    role: str

    # DRF's IsAuthenticated checks request.user.is_authenticated
    is_authenticated = True

    @property
    def is_instructor(self):
        return self.role == ROLE_INSTRUCTOR

    @property
    def is_patient(self):
        return self.role == ROLE_PATIENT


def require_role(principal, role):
    """Raise PermissionDeniedError unless ``principal`` has ``role``."""
    if principal is None or principal.role != role:
        raise PermissionDeniedError(
            message=f"Only {role}s can perform this action",
            code=f"{role.upper()}_ONLY",
        )
