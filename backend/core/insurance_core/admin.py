from django.contrib import admin

from insurance_core.models import Policy
from tenancy.admin import TenantScopedAdmin


@admin.register(Policy)
class PolicyAdmin(TenantScopedAdmin):
    list_display = (
        "policy_number",
        "company",
        "provider",
        "product_type",
        "premium_amount",
        "issue_date",
        "source_type",
        "status",
    )
    list_filter = ("company", "source_type", "status", "provider")
    search_fields = ("policy_number", "customer_name")
    date_hierarchy = "issue_date"
