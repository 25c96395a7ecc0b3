from django.urls import include, path
from rest_framework.routers import DefaultRouter

from insurance_core.api.views.policy import PolicyViewSet

router = DefaultRouter()
router.register(r"policies", PolicyViewSet, basename="policy")

urlpatterns = [
    path("", include(router.urls)),
]
