from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sourcing.views import AgentViewSet, CommissionTierViewSet, EmployeeViewSet, MispViewSet

router = DefaultRouter()
router.register(r"agents", AgentViewSet, basename="agent")
router.register(r"misps", MispViewSet, basename="misp")
router.register(r"employees", EmployeeViewSet, basename="employee")
router.register(r"commission-tiers", CommissionTierViewSet, basename="commission-tier")

urlpatterns = [
    path("", include(router.urls)),
]
