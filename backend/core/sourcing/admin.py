from django.contrib import admin

from sourcing.models import Agent, CommissionTier, Employee, Misp
from tenancy.admin import TenantScopedAdmin


@admin.register(CommissionTier)
class CommissionTierAdmin(TenantScopedAdmin):
    list_display = ("name", "company", "base_percentage", "is_active")
    list_filter = ("company", "is_active")
    search_fields = ("name",)


@admin.register(Employee)
class EmployeeAdmin(TenantScopedAdmin):
    list_display = ("employee_code", "name", "company", "base_percentage", "reporting_manager", "status")
    list_filter = ("company", "status")
    search_fields = ("employee_code", "name", "email")


@admin.register(Agent)
class AgentAdmin(TenantScopedAdmin):
    list_display = ("agent_code", "name", "company", "agent_type", "tier", "override_percentage", "status")
    list_filter = ("company", "agent_type", "status")
    search_fields = ("agent_code", "name", "email")


@admin.register(Misp)
class MispAdmin(TenantScopedAdmin):
    list_display = ("channel_partner_name", "dealer_code", "company", "tier", "percentage", "status")
    list_filter = ("company", "status")
    search_fields = ("channel_partner_name", "dealer_code")
