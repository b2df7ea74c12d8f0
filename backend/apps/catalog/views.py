"""
Program Catalog views.

Thin HTTP adapters: parse the request, call the service with the request
principal, serialize the result. Errors propagate to the unified handler.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.exceptions import NotFoundError
from apps.core.permissions import IsInstructor

from . import services
from .serializers import (
    TherapySeriesDetailSerializer,
    TherapySeriesListSerializer,
    TherapySeriesSerializer,
    TherapyTypeSerializer,
)
from .therapy_types import get_therapy_type, list_therapy_types


class TherapySeriesViewSet(viewsets.ViewSet):
    """
    list: Active series of the instructor with usage stats
    retrieve: One series (patients only see their assigned series)
    create: Create a series
    partial_update: Edit a series
    destroy: Soft-delete a series
    duplicate: Copy a series under a new name
    """

    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_permissions(self):
        if self.action == "retrieve":
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsInstructor()]

    def list(self, request):
        series_list = services.list_series(
            request.user,
            therapy_type=request.query_params.get("therapy_type"),
        )
        serializer = TherapySeriesListSerializer(series_list, many=True)
        return Response({"count": len(series_list), "results": serializer.data})

    def retrieve(self, request, pk=None):
        series = services.get_series(request.user, pk)
        return Response(TherapySeriesDetailSerializer(series).data)

    def create(self, request):
        series = services.create_series(request.user, request.data)
        return Response(TherapySeriesSerializer(series).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        series = services.update_series(request.user, pk, request.data)
        return Response(TherapySeriesSerializer(series).data)

    def update(self, request, pk=None):
        return self.partial_update(request, pk)

    def destroy(self, request, pk=None):
        services.delete_series(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def duplicate(self, request, pk=None):
        series = services.duplicate_series(request.user, pk)
        return Response(TherapySeriesSerializer(series).data, status=status.HTTP_201_CREATED)


class TherapyTypeViewSet(viewsets.ViewSet):
    """Predefined therapy types. Readable by any authenticated principal."""

    def list(self, request):
        types = list_therapy_types(
            difficulty=request.query_params.get("difficulty"),
            search=request.query_params.get("search"),
        )
        return Response(TherapyTypeSerializer(types, many=True).data)

    def retrieve(self, request, pk=None):
        therapy_type = get_therapy_type(pk)
        if therapy_type is None:
            raise NotFoundError(message="Therapy type not found", code="THERAPY_TYPE_NOT_FOUND")
        return Response(TherapyTypeSerializer(therapy_type).data)
