from django.urls import include, path
from rest_framework.routers import DefaultRouter

from commission.views import (
    CommissionGridViewSet,
    CommissionRecalculateAPIView,
    CommissionReportAPIView,
    CommissionReportExportAPIView,
    CommissionReversalListAPIView,
    CommissionSettingsAPIView,
    PolicyCommissionDetailAPIView,
)

router = DefaultRouter()
router.register(r"grids", CommissionGridViewSet, basename="commission-grid")

urlpatterns = [
    path("", include(router.urls)),
    path("settings/", CommissionSettingsAPIView.as_view(), name="commission-settings"),
    path("recalculate/", CommissionRecalculateAPIView.as_view(), name="commission-recalculate"),
    path("report/", CommissionReportAPIView.as_view(), name="commission-report"),
    path(
        "report/export/",
        CommissionReportExportAPIView.as_view(),
        name="commission-report-export",
    ),
    path(
        "report/reversals/",
        CommissionReversalListAPIView.as_view(),
        name="commission-report-reversals",
    ),
    path(
        "policies/<int:policy_id>/",
        PolicyCommissionDetailAPIView.as_view(),
        name="commission-policy-detail",
    ),
]
