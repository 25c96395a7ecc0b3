from django.db.models import Q

from sourcing.models import Agent, CommissionTier, Employee, Misp
from sourcing.serializers import (
    AgentSerializer,
    CommissionTierSerializer,
    EmployeeSerializer,
    MispSerializer,
)
from tenancy.viewsets import TenantModelViewSet


def _search(queryset, request, *fields):
    term = (request.query_params.get("search") or "").strip()
    status = (request.query_params.get("status") or "").strip().upper()
    if status:
        queryset = queryset.filter(status=status)
    if not term:
        return queryset
    condition = Q()
    for field in fields:
        condition |= Q(**{f"{field}__icontains": term})
    return queryset.filter(condition)


class CommissionTierViewSet(TenantModelViewSet):
    model = CommissionTier
    serializer_class = CommissionTierSerializer
    tenant_resource_key = "commission_tiers"
    ordering = ("name", "id")


class EmployeeViewSet(TenantModelViewSet):
    model = Employee
    serializer_class = EmployeeSerializer
    tenant_resource_key = "employees"
    ordering = ("name", "id")
    select_related = ("reporting_manager",)

    def filter_queryset_params(self, queryset):
        return _search(queryset, self.request, "name", "employee_code", "email")


class AgentViewSet(TenantModelViewSet):
    model = Agent
    serializer_class = AgentSerializer
    tenant_resource_key = "agents"
    ordering = ("name", "id")
    select_related = ("tier", "reporting_employee")

    def filter_queryset_params(self, queryset):
        return _search(queryset, self.request, "name", "agent_code", "email")


class MispViewSet(TenantModelViewSet):
    model = Misp
    serializer_class = MispSerializer
    tenant_resource_key = "misps"
    ordering = ("channel_partner_name", "id")
    select_related = ("tier", "reporting_employee")

    def filter_queryset_params(self, queryset):
        return _search(queryset, self.request, "channel_partner_name", "dealer_code")
