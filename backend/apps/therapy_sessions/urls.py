"""
Therapy session URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import TherapySessionViewSet

router = SimpleRouter()
router.register("", TherapySessionViewSet, basename="session")

urlpatterns = [
    path("", include(router.urls)),
]
