from __future__ import annotations

from django.db.models import Q

from insurance_core.api.serializers.policy import PolicySerializer
from insurance_core.models import Policy
from tenancy.viewsets import TenantModelViewSet


class PolicyViewSet(TenantModelViewSet):
    model = Policy
    serializer_class = PolicySerializer
    tenant_resource_key = "policies"
    ordering = ("-issue_date", "-id")
    select_related = ("agent", "employee", "misp")

    def filter_queryset_params(self, queryset):
        params = self.request.query_params

        for field in ("product_type", "provider"):
            value = (params.get(field) or "").strip()
            if value:
                queryset = queryset.filter(**{f"{field}__iexact": value})

        source_type = (params.get("source_type") or "").strip().lower()
        if source_type:
            queryset = queryset.filter(source_type=source_type)

        status = (params.get("status") or "").strip().upper()
        if status:
            queryset = queryset.filter(status=status)

        search = (params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(
                Q(policy_number__icontains=search) | Q(customer_name__icontains=search)
            )
        return queryset
