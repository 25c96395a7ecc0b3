import copy

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from commission.models import CommissionGrid, CommissionSettings, PolicyCommission
from sourcing.models import Employee
from tenancy.serializers import TenantScopedSerializerMixin


class CommissionGridSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    total_rate = serializers.DecimalField(max_digits=7, decimal_places=3, read_only=True)

    class Meta:
        model = CommissionGrid
        fields = (
            "id",
            "provider",
            "product_type",
            "plan_name",
            "commission_rate",
            "reward_rate",
            "bonus_commission_rate",
            "total_rate",
            "min_premium",
            "max_premium",
            "valid_from",
            "valid_to",
            "is_active",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("created_at", "updated_at")

    def validate(self, attrs):
        attrs = super().validate(attrs)
        for field in ("provider", "product_type"):
            if field in attrs:
                attrs[field] = attrs[field].strip()
        if "plan_name" in attrs:
            attrs["plan_name"] = (attrs["plan_name"] or "").strip() or None

        if self.instance is not None:
            candidate = copy.copy(self.instance)
        else:
            candidate = CommissionGrid(company=self.get_company())
        for field, value in attrs.items():
            setattr(candidate, field, value)

        try:
            candidate.clean()
        except DjangoValidationError as exc:
            detail = exc.message_dict if hasattr(exc, "error_dict") else exc.messages
            raise serializers.ValidationError(detail) from exc
        return attrs


class CommissionSettingsSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    tenant_scoped_fields = {"default_reporting_employee": Employee}

    class Meta:
        model = CommissionSettings
        fields = (
            "employee_share_percentage",
            "reporting_override_percentage",
            "default_reporting_employee",
            "updated_at",
        )
        read_only_fields = ("updated_at",)


class RecalculationRequestSerializer(serializers.Serializer):
    policy_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        allow_empty=False,
    )
    max_workers = serializers.IntegerField(required=False, min_value=1, max_value=32)


class PolicyCommissionSerializer(serializers.ModelSerializer):
    policy_id = serializers.IntegerField(source="policy.id", read_only=True)
    policy_number = serializers.CharField(source="policy.policy_number", read_only=True)
    customer_name = serializers.CharField(source="policy.customer_name", read_only=True)
    product_type = serializers.CharField(source="policy.product_type", read_only=True)
    provider = serializers.CharField(source="policy.provider", read_only=True)
    plan_name = serializers.CharField(source="policy.plan_name", read_only=True)
    issue_date = serializers.DateField(source="policy.issue_date", read_only=True)
    policy_status = serializers.CharField(source="policy.status", read_only=True)

    class Meta:
        model = PolicyCommission
        fields = (
            "policy_id",
            "policy_number",
            "customer_name",
            "product_type",
            "provider",
            "plan_name",
            "issue_date",
            "policy_status",
            "status",
            "grid",
            "premium",
            "base_rate",
            "reward_rate",
            "bonus_rate",
            "total_rate",
            "insurer_commission",
            "source_type",
            "source_id",
            "source_name",
            "tier_name",
            "applied_percentage",
            "agent_commission",
            "employee_commission",
            "misp_commission",
            "reporting_employee_commission",
            "reporting_employee_id",
            "broker_share",
            "conflicting_grid_ids",
            "calculated_at",
        )
        read_only_fields = fields
