from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from tenancy.models import BaseTenantModel


_PERCENTAGE_VALIDATORS = [
    MinValueValidator(Decimal("0.00")),
    MaxValueValidator(Decimal("100.00")),
]


def _percentage_field(**kwargs):
    return models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=_PERCENTAGE_VALIDATORS,
        **kwargs,
    )


class SourceStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"
    SUSPENDED = "SUSPENDED", "Suspended"
    TERMINATED = "TERMINATED", "Terminated"


class CommissionTier(BaseTenantModel):
    """Named share of the insurer commission granted to agents/MISPs."""

    name = models.CharField(max_length=100)
    base_percentage = _percentage_field()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("name", "id")
        verbose_name = "Commission Tier"
        verbose_name_plural = "Commission Tiers"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "name"),
                name="uq_comm_tier_company_name",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} ({self.base_percentage}%)"


class Employee(BaseTenantModel):
    employee_code = models.CharField(max_length=40)
    name = models.CharField(max_length=150)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    base_percentage = _percentage_field(
        null=True,
        blank=True,
        help_text="Share of insurer commission on self-sourced policies. "
        "Empty falls back to the tenant employee share.",
    )
    reporting_manager = models.ForeignKey(
        "self",
        related_name="direct_reports",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    status = models.CharField(
        max_length=20,
        choices=SourceStatus.choices,
        default=SourceStatus.ACTIVE,
        db_index=True,
    )

    class Meta:
        ordering = ("name", "id")
        verbose_name = "Employee"
        verbose_name_plural = "Employees"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "employee_code"),
                name="uq_employee_code_company",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.employee_code} - {self.name}"

    def clean(self):
        super().clean()
        if self.reporting_manager_id and self.reporting_manager_id == self.pk:
            raise ValidationError({"reporting_manager": "An employee cannot report to themselves."})
        self._ensure_same_company("reporting_manager")


class Agent(BaseTenantModel):
    class AgentType(models.TextChoices):
        POSP = "POSP", "POSP"
        MISP = "MISP", "MISP"

    agent_code = models.CharField(max_length=40)
    name = models.CharField(max_length=150)
    agent_type = models.CharField(
        max_length=10,
        choices=AgentType.choices,
        default=AgentType.POSP,
    )
    tier = models.ForeignKey(
        CommissionTier,
        related_name="agents",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    base_percentage = _percentage_field(null=True, blank=True)
    override_percentage = _percentage_field(
        null=True,
        blank=True,
        help_text="Takes precedence over the tier and base percentage.",
    )
    reporting_employee = models.ForeignKey(
        Employee,
        related_name="reporting_agents",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    pan_number = models.CharField(max_length=10, blank=True)
    status = models.CharField(
        max_length=20,
        choices=SourceStatus.choices,
        default=SourceStatus.ACTIVE,
        db_index=True,
    )

    class Meta:
        ordering = ("name", "id")
        verbose_name = "Agent"
        verbose_name_plural = "Agents"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "agent_code"),
                name="uq_agent_code_company",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.agent_code} - {self.name}"

    def clean(self):
        super().clean()
        self._ensure_same_company("tier", "reporting_employee")


class Misp(BaseTenantModel):
    """Motor Insurance Service Provider (dealer channel partner)."""

    channel_partner_name = models.CharField(max_length=200)
    dealer_code = models.CharField(max_length=40, blank=True)
    tier = models.ForeignKey(
        CommissionTier,
        related_name="misps",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    percentage = _percentage_field(null=True, blank=True)
    override_percentage = _percentage_field(null=True, blank=True)
    reporting_employee = models.ForeignKey(
        Employee,
        related_name="reporting_misps",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    gst_number = models.CharField(max_length=15, blank=True)
    status = models.CharField(
        max_length=20,
        choices=SourceStatus.choices,
        default=SourceStatus.ACTIVE,
        db_index=True,
    )

    class Meta:
        ordering = ("channel_partner_name", "id")
        verbose_name = "MISP"
        verbose_name_plural = "MISPs"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "channel_partner_name"),
                name="uq_misp_name_company",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.channel_partner_name

    @property
    def name(self) -> str:
        return self.channel_partner_name

    def clean(self):
        super().clean()
        self._ensure_same_company("tier", "reporting_employee")
