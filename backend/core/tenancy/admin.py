from django.contrib import admin


class _UnscopedQuerysetMixin:
    """Admin runs outside tenant context; read through `all_objects`."""

    def get_queryset(self, request):
        return self.model.all_objects.all()

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        related_model = db_field.remote_field.model
        if "queryset" not in kwargs and hasattr(related_model, "all_objects"):
            kwargs["queryset"] = related_model.all_objects.all()
        return super().formfield_for_foreignkey(db_field, request, **kwargs)


class TenantScopedAdmin(_UnscopedQuerysetMixin, admin.ModelAdmin):
    pass


class TenantScopedInline(_UnscopedQuerysetMixin, admin.TabularInline):
    pass
