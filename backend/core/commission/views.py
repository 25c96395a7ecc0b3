import logging

from django.conf import settings
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from commission.models import CommissionGrid, CommissionSettings
from commission.serializers import (
    CommissionGridSerializer,
    CommissionSettingsSerializer,
    PolicyCommissionSerializer,
    RecalculationRequestSerializer,
)
from commission.services.commission_engine import find_grid_overlaps
from commission.services.recalculation import (
    RecalculationAborted,
    grid_row_from_model,
    recalculate_policies,
)
from commission.services.reporting import (
    commission_csv_response,
    commission_queryset,
    filter_commissions,
    reconcile,
    result_from_cache,
    reversal_candidates,
    summarize,
)
from tenancy.permissions import IsTenantRoleAllowed
from tenancy.viewsets import TenantModelViewSet


logger = logging.getLogger(__name__)


class CommissionGridViewSet(TenantModelViewSet):
    model = CommissionGrid
    serializer_class = CommissionGridSerializer
    tenant_resource_key = "commission_grids"
    ordering = ("provider", "product_type", "plan_name", "-valid_from", "-id")

    def filter_queryset_params(self, queryset):
        params = self.request.query_params
        for field in ("provider", "product_type", "plan_name"):
            value = (params.get(field) or "").strip()
            if value:
                queryset = queryset.filter(**{f"{field}__iexact": value})

        is_active = (params.get("is_active") or "").strip().lower()
        if is_active in ("true", "1"):
            queryset = queryset.filter(is_active=True)
        elif is_active in ("false", "0"):
            queryset = queryset.filter(is_active=False)
        return queryset

    @action(detail=False, methods=["get"])
    def overlaps(self, request):
        rows = [grid_row_from_model(grid) for grid in self.get_queryset()]
        pairs = find_grid_overlaps(rows)
        return Response(
            {
                "count": len(pairs),
                "results": [
                    {
                        "grid_ids": [first.id, second.id],
                        "provider": first.provider,
                        "product_type": first.product_type,
                        "plan_name": first.plan_name,
                    }
                    for first, second in pairs
                ],
            }
        )


class CommissionSettingsAPIView(generics.RetrieveUpdateAPIView):
    permission_classes = [IsTenantRoleAllowed]
    serializer_class = CommissionSettingsSerializer
    tenant_resource_key = "commission_settings"

    def get_object(self):
        return CommissionSettings.for_company(self.request.company)

    def get_serializer_context(self):
        ctx = super().get_serializer_context()
        ctx["company"] = getattr(self.request, "company", None)
        return ctx


class CommissionRecalculateAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "commission_recalculation"

    def post(self, request):
        serializer = RecalculationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            report = recalculate_policies(
                request.company,
                serializer.validated_data.get("policy_ids"),
                max_workers=serializer.validated_data.get("max_workers"),
            )
        except RecalculationAborted as exc:
            payload = {
                "detail": str(exc),
                "completed": exc.completed,
                "remaining": exc.remaining,
            }
            if exc.report is not None:
                payload["report"] = exc.report.as_dict()
            return Response(payload, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(report.as_dict(), status=status.HTTP_200_OK)


class CommissionReportAPIView(generics.ListAPIView):
    permission_classes = [IsTenantRoleAllowed]
    serializer_class = PolicyCommissionSerializer
    tenant_resource_key = "commission_reports"

    def get_queryset(self):
        return filter_commissions(
            commission_queryset(self.request.company),
            self.request.query_params,
        )

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        totals = summarize(result_from_cache(row) for row in queryset)
        response = super().list(request, *args, **kwargs)
        response.data["totals"] = totals
        return response


class CommissionReversalListAPIView(generics.ListAPIView):
    """Cancelled policies still carrying a source or reporting payout."""

    permission_classes = [IsTenantRoleAllowed]
    serializer_class = PolicyCommissionSerializer
    tenant_resource_key = "commission_reports"

    def get_queryset(self):
        return reversal_candidates(commission_queryset(self.request.company))


class CommissionReportExportAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "commission_reports"

    def get(self, request):
        queryset = filter_commissions(commission_queryset(request.company), request.query_params)
        logger.info(
            "commission.export tenant=%s rows=%s",
            request.company.tenant_code,
            queryset.count(),
        )
        return commission_csv_response(
            (result_from_cache(row) for row in queryset.iterator()),
            settings.COMMISSION_EXPORT_FILENAME_PREFIX,
        )


class PolicyCommissionDetailAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "commission_reports"

    def get(self, request, policy_id):
        row = get_object_or_404(commission_queryset(request.company), policy_id=policy_id)
        data = PolicyCommissionSerializer(row).data
        data["discrepancies"] = reconcile(result_from_cache(row))
        return Response(data)
