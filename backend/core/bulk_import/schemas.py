"""Typed row schemas for CSV imports.

Every schema is a DRF `Serializer` whose field names are the CSV column
names. `persist()` creates or updates the model row keyed by `key_field`.
"""

from __future__ import annotations

import re
from decimal import Decimal

from rest_framework import serializers

from bulk_import.models import EntityType
from commission.models import CommissionGrid
from insurance_core.models import Policy
from sourcing.models import Agent, CommissionTier, Employee, Misp, SourceStatus


_DATE_FORMATS = ["iso-8601", "%d/%m/%Y", "%d-%m-%Y"]
_PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")


def _percentage(**kwargs):
    return serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        **kwargs,
    )


def _rate(**kwargs):
    return serializers.DecimalField(
        max_digits=6,
        decimal_places=3,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        **kwargs,
    )


def _money(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


class RowSchema(serializers.Serializer):
    model = None
    # CSV column holding the natural key; None means rows always create.
    key_field: str | None = None
    # model attribute the natural key is stored in, when it differs
    key_attr: str | None = None
    # CSV reference columns resolved in `validate`, not copied to the model
    reference_fields: tuple[str, ...] = ()

    @classmethod
    def columns(cls) -> list[str]:
        return list(cls().fields.keys())

    @classmethod
    def required_columns(cls) -> list[str]:
        return [name for name, field in cls().fields.items() if field.required]

    @property
    def company(self):
        return self.context["company"]

    def natural_key(self, raw_row: dict) -> str | None:
        if not self.key_field:
            return None
        return (raw_row.get(self.key_field) or "").strip().casefold() or None

    def _lookup(self, model, field: str, value, *, column: str, label: str):
        if value in (None, ""):
            return None
        found = model.all_objects.filter(company=self.company, **{f"{field}__iexact": value}).first()
        if found is None:
            raise serializers.ValidationError({column: f"Unknown {label} '{value}'."})
        return found

    def model_values(self) -> dict:
        return {
            name: value
            for name, value in self.validated_data.items()
            if name not in self.reference_fields
        }

    def persist(self):
        """Create or update the row; returns (instance, created)."""

        values = self.model_values()
        model = self.model
        instance = None
        if self.key_field:
            key_attr = self.key_attr or self.key_field
            instance = model.all_objects.filter(
                company=self.company,
                **{f"{key_attr}__iexact": values[key_attr]},
            ).first()

        created = instance is None
        if created:
            instance = model(company=self.company)
        for name, value in values.items():
            setattr(instance, name, value)
        instance.clean()
        instance.save()
        return instance, created


class CommissionTierRow(RowSchema):
    model = CommissionTier
    key_field = "name"

    name = serializers.CharField(max_length=100)
    base_percentage = _percentage()
    description = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False, default=True)


class EmployeeRow(RowSchema):
    model = Employee
    key_field = "employee_code"
    reference_fields = ("reporting_manager_code",)

    employee_code = serializers.CharField(max_length=40)
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    base_percentage = _percentage(required=False, allow_null=True)
    reporting_manager_code = serializers.CharField(max_length=40, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=SourceStatus.choices, required=False)

    def validate(self, attrs):
        code = attrs.get("reporting_manager_code")
        if code and code.casefold() == attrs["employee_code"].casefold():
            raise serializers.ValidationError(
                {"reporting_manager_code": "An employee cannot report to themselves."}
            )
        manager = self._lookup(
            Employee, "employee_code", code, column="reporting_manager_code", label="employee"
        )
        if manager is not None:
            attrs["reporting_manager"] = manager
        return attrs


class _ChannelRow(RowSchema):
    reference_fields = ("tier_name", "reporting_employee_code")

    def validate(self, attrs):
        tier = self._lookup(
            CommissionTier, "name", attrs.get("tier_name"), column="tier_name", label="tier"
        )
        employee = self._lookup(
            Employee,
            "employee_code",
            attrs.get("reporting_employee_code"),
            column="reporting_employee_code",
            label="employee",
        )
        if tier is not None:
            attrs["tier"] = tier
        if employee is not None:
            attrs["reporting_employee"] = employee
        return attrs


class AgentRow(_ChannelRow):
    model = Agent
    key_field = "agent_code"

    agent_code = serializers.CharField(max_length=40)
    name = serializers.CharField(max_length=150)
    agent_type = serializers.ChoiceField(choices=Agent.AgentType.choices, required=False)
    tier_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    base_percentage = _percentage(required=False, allow_null=True)
    override_percentage = _percentage(required=False, allow_null=True)
    reporting_employee_code = serializers.CharField(max_length=40, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    pan_number = serializers.CharField(max_length=10, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=SourceStatus.choices, required=False)

    def validate_pan_number(self, value):
        value = value.strip().upper()
        if value and not _PAN_RE.match(value):
            raise serializers.ValidationError("PAN must look like ABCDE1234F.")
        return value


class MispRow(_ChannelRow):
    model = Misp
    key_field = "channel_partner_name"

    channel_partner_name = serializers.CharField(max_length=200)
    dealer_code = serializers.CharField(max_length=40, required=False, allow_blank=True)
    tier_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    percentage = _percentage(required=False, allow_null=True)
    override_percentage = _percentage(required=False, allow_null=True)
    reporting_employee_code = serializers.CharField(max_length=40, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    gst_number = serializers.CharField(max_length=15, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=SourceStatus.choices, required=False)


class CommissionGridRow(RowSchema):
    model = CommissionGrid

    provider = serializers.CharField(max_length=120)
    product_type = serializers.CharField(max_length=80)
    plan_name = serializers.CharField(max_length=120, required=False, allow_blank=True)
    commission_rate = _rate()
    reward_rate = _rate(required=False, default=Decimal("0"))
    bonus_commission_rate = _rate(required=False, default=Decimal("0"))
    min_premium = _money(required=False, allow_null=True, min_value=Decimal("0"))
    max_premium = _money(required=False, allow_null=True, min_value=Decimal("0"))
    valid_from = serializers.DateField(input_formats=_DATE_FORMATS)
    valid_to = serializers.DateField(input_formats=_DATE_FORMATS, required=False, allow_null=True)
    is_active = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs):
        attrs["plan_name"] = (attrs.get("plan_name") or "").strip() or None
        valid_to = attrs.get("valid_to")
        if valid_to and valid_to < attrs["valid_from"]:
            raise serializers.ValidationError({"valid_to": "valid_to must not precede valid_from."})
        low, high = attrs.get("min_premium"), attrs.get("max_premium")
        if low is not None and high is not None and high < low:
            raise serializers.ValidationError({"max_premium": "max_premium must not be below min_premium."})
        return attrs


class PolicyRow(RowSchema):
    model = Policy
    key_field = "policy_number"
    reference_fields = ("source_code",)

    # source_type -> (model, lookup field) for `source_code`
    SOURCE_LOOKUPS = {
        Policy.SourceType.AGENT: (Agent, "agent_code"),
        Policy.SourceType.EMPLOYEE: (Employee, "employee_code"),
        Policy.SourceType.MISP: (Misp, "channel_partner_name"),
    }

    policy_number = serializers.CharField(max_length=80)
    customer_name = serializers.CharField(max_length=200)
    product_type = serializers.CharField(max_length=80)
    provider = serializers.CharField(max_length=120)
    plan_name = serializers.CharField(max_length=120, required=False, allow_blank=True)
    premium_amount = _money(min_value=Decimal("0"))
    issue_date = serializers.DateField(input_formats=_DATE_FORMATS)
    source_type = serializers.ChoiceField(choices=Policy.SourceType.choices)
    source_code = serializers.CharField(max_length=200, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Policy.Status.choices, required=False)

    def validate(self, attrs):
        attrs["plan_name"] = (attrs.get("plan_name") or "").strip() or None
        source_type = attrs["source_type"]
        code = (attrs.get("source_code") or "").strip()

        attrs["agent"] = attrs["employee"] = attrs["misp"] = None
        lookup = self.SOURCE_LOOKUPS.get(source_type)
        if lookup is None:
            if code:
                raise serializers.ValidationError(
                    {"source_code": "source_code must be empty for org_direct policies."}
                )
            return attrs

        if not code:
            raise serializers.ValidationError(
                {"source_code": f"source_code is required for {source_type} policies."}
            )
        model, field = lookup
        attrs[Policy.SOURCE_FIELDS[source_type]] = self._lookup(
            model, field, code, column="source_code", label=source_type
        )
        return attrs


SCHEMAS: dict[str, type[RowSchema]] = {
    EntityType.AGENTS: AgentRow,
    EntityType.EMPLOYEES: EmployeeRow,
    EntityType.MISPS: MispRow,
    EntityType.COMMISSION_TIERS: CommissionTierRow,
    EntityType.COMMISSION_GRIDS: CommissionGridRow,
    EntityType.POLICIES: PolicyRow,
}


def get_schema(entity_type: str) -> type[RowSchema] | None:
    return SCHEMAS.get(str(entity_type or "").strip().lower())
