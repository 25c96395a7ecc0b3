from django.contrib import admin

from commission.models import CommissionGrid, CommissionSettings, PolicyCommission
from tenancy.admin import TenantScopedAdmin


@admin.register(CommissionGrid)
class CommissionGridAdmin(TenantScopedAdmin):
    list_display = (
        "provider",
        "product_type",
        "plan_name",
        "company",
        "commission_rate",
        "reward_rate",
        "bonus_commission_rate",
        "valid_from",
        "valid_to",
        "is_active",
    )
    list_filter = ("company", "is_active", "provider", "product_type")
    search_fields = ("provider", "product_type", "plan_name")


@admin.register(CommissionSettings)
class CommissionSettingsAdmin(TenantScopedAdmin):
    list_display = (
        "company",
        "employee_share_percentage",
        "reporting_override_percentage",
        "default_reporting_employee",
    )


@admin.register(PolicyCommission)
class PolicyCommissionAdmin(TenantScopedAdmin):
    list_display = (
        "policy",
        "company",
        "status",
        "insurer_commission",
        "broker_share",
        "calculated_at",
    )
    list_filter = ("company", "status", "source_type")
    readonly_fields = [field.name for field in PolicyCommission._meta.fields]
