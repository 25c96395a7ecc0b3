from django.contrib import admin

from bulk_import.models import ImportErrorLog, ImportSession
from tenancy.admin import TenantScopedAdmin, TenantScopedInline


class ImportErrorLogInline(TenantScopedInline):
    model = ImportErrorLog
    extra = 0
    fields = ("row_number", "field", "value", "message", "error_type")
    readonly_fields = fields
    can_delete = False


@admin.register(ImportSession)
class ImportSessionAdmin(TenantScopedAdmin):
    list_display = (
        "id",
        "company",
        "entity_type",
        "file_name",
        "status",
        "total_rows",
        "created_rows",
        "updated_rows",
        "failed_rows",
        "started_at",
    )
    list_filter = ("company", "entity_type", "status")
    search_fields = ("file_name",)
    inlines = [ImportErrorLogInline]
