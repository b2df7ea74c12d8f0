"""
Series persistence access.
"""

from django.core.exceptions import ValidationError as DjangoValidationError

from apps.core.exceptions import NotFoundError

from .models import TherapySeries


class SeriesRepository:
    """Lookups for TherapySeries scoped to an owning instructor."""

    @staticmethod
    def get_owned(series_id, instructor_id, for_update=False) -> TherapySeries:
        queryset = TherapySeries.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(id=series_id, instructor_id=instructor_id, is_active=True)
        except (TherapySeries.DoesNotExist, DjangoValidationError):
            raise NotFoundError(
                message="Series not found",
                detail=f"No active series {series_id} for this instructor",
                code="SERIES_NOT_FOUND",
            )

    @staticmethod
    def list_for_instructor(instructor_id):
        return TherapySeries.objects.filter(instructor_id=instructor_id, is_active=True)

    @staticmethod
    def name_taken(instructor_id, name, exclude_id=None) -> bool:
        queryset = TherapySeries.objects.filter(
            instructor_id=instructor_id,
            name=name,
            is_active=True,
        )
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()

    @staticmethod
    def active_assignments(series):
        """Active patients currently assigned to ``series``."""
        return series.assigned_patients.filter(is_active=True)
