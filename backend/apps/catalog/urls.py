"""
Program Catalog URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import TherapySeriesViewSet, TherapyTypeViewSet

router = SimpleRouter()
router.register("therapy-types", TherapyTypeViewSet, basename="therapy-type")
router.register("", TherapySeriesViewSet, basename="series")

urlpatterns = [
    path("", include(router.urls)),
]
