from rest_framework import serializers

from sourcing.models import Agent, CommissionTier, Employee, Misp
from tenancy.serializers import TenantScopedSerializerMixin


class CommissionTierSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    tenant_unique_fields = ("name",)

    class Meta:
        model = CommissionTier
        fields = (
            "id",
            "name",
            "base_percentage",
            "description",
            "is_active",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("created_at", "updated_at")


class EmployeeSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    tenant_scoped_fields = {"reporting_manager": Employee}
    tenant_unique_fields = ("employee_code",)

    reporting_manager_name = serializers.CharField(
        source="reporting_manager.name",
        read_only=True,
        default=None,
    )

    class Meta:
        model = Employee
        fields = (
            "id",
            "employee_code",
            "name",
            "email",
            "phone",
            "base_percentage",
            "reporting_manager",
            "reporting_manager_name",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("created_at", "updated_at")

    def validate(self, attrs):
        attrs = super().validate(attrs)
        manager = attrs.get("reporting_manager")
        if manager is not None and self.instance is not None and manager.pk == self.instance.pk:
            raise serializers.ValidationError(
                {"reporting_manager": "An employee cannot report to themselves."}
            )
        return attrs


class AgentSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    tenant_scoped_fields = {
        "tier": CommissionTier,
        "reporting_employee": Employee,
    }
    tenant_unique_fields = ("agent_code",)

    tier_name = serializers.CharField(source="tier.name", read_only=True, default=None)

    class Meta:
        model = Agent
        fields = (
            "id",
            "agent_code",
            "name",
            "agent_type",
            "tier",
            "tier_name",
            "base_percentage",
            "override_percentage",
            "reporting_employee",
            "email",
            "phone",
            "pan_number",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("created_at", "updated_at")

    def validate_pan_number(self, value):
        return value.strip().upper()


class MispSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    tenant_scoped_fields = {
        "tier": CommissionTier,
        "reporting_employee": Employee,
    }
    tenant_unique_fields = ("channel_partner_name",)

    tier_name = serializers.CharField(source="tier.name", read_only=True, default=None)

    class Meta:
        model = Misp
        fields = (
            "id",
            "channel_partner_name",
            "dealer_code",
            "tier",
            "tier_name",
            "percentage",
            "override_percentage",
            "reporting_employee",
            "email",
            "phone",
            "gst_number",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("created_at", "updated_at")
