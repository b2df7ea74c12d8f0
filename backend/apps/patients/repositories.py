"""
Patient persistence access.

Every lookup filters on ``is_active`` and on the principal that owns the
row, so a patient of another instructor is indistinguishable from a
missing one.
"""

from django.core.exceptions import ValidationError as DjangoValidationError

from apps.core.exceptions import NotFoundError, PermissionDeniedError

from .models import Patient


def _not_found(patient_id=None):
    return NotFoundError(
        message="Patient not found",
        detail=f"No active patient {patient_id}" if patient_id else None,
        code="PATIENT_NOT_FOUND",
    )


class PatientRepository:

    @staticmethod
    def _get(queryset, for_update, **lookup):
        if for_update:
            # Lock only the patient row; the series join is a nullable outer join
            queryset = queryset.select_for_update(of=("self",))
        try:
            return queryset.get(is_active=True, **lookup)
        except (Patient.DoesNotExist, DjangoValidationError):
            raise _not_found(lookup.get("id"))

    @staticmethod
    def get_owned(patient_id, instructor_id, for_update=False) -> Patient:
        """Active patient ``patient_id`` owned by ``instructor_id``."""
        return PatientRepository._get(
            Patient.objects.select_related("assigned_series"),
            for_update,
            id=patient_id,
            instructor_id=instructor_id,
        )

    @staticmethod
    def get_for_principal(principal, for_update=False) -> Patient:
        """The active patient record linked to a patient principal."""
        return PatientRepository._get(
            Patient.objects.select_related("assigned_series"),
            for_update,
            user_id=principal.id,
        )

    @staticmethod
    def get_accessible(patient_id, principal) -> Patient:
        """
        Instructors reach their own patients, patients only themselves.
        """
        if principal.is_instructor:
            return PatientRepository.get_owned(patient_id, principal.id)
        if principal.is_patient:
            patient = PatientRepository.get_for_principal(principal)
            if str(patient.id) != str(patient_id):
                raise _not_found(patient_id)
            return patient
        raise PermissionDeniedError(code="ACCESS_DENIED")

    @staticmethod
    def list_for_instructor(instructor_id):
        return Patient.objects.filter(
            instructor_id=instructor_id,
            is_active=True,
        ).select_related("assigned_series")

    @staticmethod
    def email_taken(instructor_id, email, exclude_id=None) -> bool:
        queryset = Patient.objects.filter(
            instructor_id=instructor_id,
            email__iexact=email,
            is_active=True,
        )
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()

    @staticmethod
    def account_linked(user_id, exclude_id=None) -> bool:
        """True when any patient row, active or not, holds ``user_id``."""
        queryset = Patient.objects.filter(user_id=user_id)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()
