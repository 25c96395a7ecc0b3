from __future__ import annotations

from rest_framework import serializers

from insurance_core.models import Policy
from sourcing.models import Agent, Employee, Misp
from tenancy.serializers import TenantScopedSerializerMixin


class PolicySerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    tenant_scoped_fields = {
        "agent": Agent,
        "employee": Employee,
        "misp": Misp,
    }
    tenant_unique_fields = ("policy_number",)

    source_id = serializers.IntegerField(read_only=True)
    source_name = serializers.SerializerMethodField()

    class Meta:
        model = Policy
        fields = (
            "id",
            "policy_number",
            "customer_name",
            "product_type",
            "provider",
            "plan_name",
            "premium_amount",
            "issue_date",
            "source_type",
            "agent",
            "employee",
            "misp",
            "source_id",
            "source_name",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("created_at", "updated_at")

    def get_source_name(self, obj) -> str | None:
        source = obj.source
        return source.name if source is not None else None

    def validate_premium_amount(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("premium_amount cannot be negative.")
        return value

    def validate(self, attrs):
        attrs = super().validate(attrs)
        source_type = attrs.get(
            "source_type",
            getattr(self.instance, "source_type", Policy.SourceType.ORG_DIRECT),
        )
        expected = Policy.SOURCE_FIELDS.get(source_type)
        errors = {}
        for field in Policy.SOURCE_FIELDS.values():
            value = attrs.get(field, getattr(self.instance, field, None))
            if field == expected and value is None:
                errors[field] = f"{field} is required when source_type is '{source_type}'."
            elif field != expected and value is not None:
                errors[field] = f"{field} must be empty when source_type is '{source_type}'."
        if errors:
            raise serializers.ValidationError(errors)
        return attrs
