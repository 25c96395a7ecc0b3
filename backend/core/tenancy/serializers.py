from rest_framework import serializers

from tenancy.context import get_current_company


class TenantScopedSerializerMixin:
    """Restrict related-field querysets to the serializer's company.

    `tenant_scoped_fields` maps serializer field names to model classes with
    an `all_objects` manager. `tenant_unique_fields` are checked for
    case-insensitive uniqueness within the company.
    """

    tenant_scoped_fields: dict = {}
    tenant_unique_fields: tuple = ()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        company = self.get_company()
        if company is None:
            return
        for field_name, model in self.tenant_scoped_fields.items():
            field = self.fields.get(field_name)
            if field is not None:
                field.queryset = model.all_objects.filter(company=company)

    def get_company(self):
        return (
            self.context.get("company")
            or getattr(self.context.get("request"), "company", None)
            or get_current_company()
        )

    def validate(self, attrs):
        attrs = super().validate(attrs)
        company = self.get_company()
        if company is None:
            return attrs

        model = self.Meta.model
        for field_name in self.tenant_unique_fields:
            value = attrs.get(field_name)
            if value in (None, ""):
                continue
            queryset = model.all_objects.filter(company=company, **{f"{field_name}__iexact": value})
            if self.instance is not None:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError(
                    {field_name: f"{field_name} '{value}' already exists in this company."}
                )
        return attrs
