from django.contrib import admin

from customers.models import Company, CompanyMembership


class CompanyMembershipInline(admin.TabularInline):
    model = CompanyMembership
    extra = 0
    fields = ("user", "role", "is_active")
    autocomplete_fields = ("user",)


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant_code", "subdomain", "status", "currency", "is_active")
    list_filter = ("status", "is_active", "currency")
    search_fields = ("name", "tenant_code", "subdomain")
    readonly_fields = ("created_at", "updated_at")
    inlines = (CompanyMembershipInline,)
    fieldsets = (
        (None, {"fields": ("name", "tenant_code", "subdomain", "currency")}),
        ("Access", {"fields": ("status", "is_active")}),
        (
            "Role matrix overrides",
            {
                "fields": ("rbac_overrides",),
                "description": (
                    "Per-resource method overrides, e.g. "
                    "{'commission_grids': {'POST': ['OWNER', 'MANAGER']}}. "
                    "Known resources: policies, agents, misps, employees, commission_tiers, "
                    "commission_grids, commission_settings, commission_recalculation, "
                    "commission_reports, bulk_imports."
                ),
            },
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(CompanyMembership)
class CompanyMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active")
    list_filter = ("role", "is_active")
    list_select_related = ("company", "user")
    search_fields = ("company__tenant_code", "user__username", "user__email")
