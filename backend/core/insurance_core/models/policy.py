from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from sourcing.models import Agent, Employee, Misp
from tenancy.models import BaseTenantModel


class Policy(BaseTenantModel):
    """Issued insurance policy (tenant scoped) and its source of business."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        CANCELLED = "CANCELLED", "Cancelled"
        EXPIRED = "EXPIRED", "Expired"

    class SourceType(models.TextChoices):
        AGENT = "agent", "Agent"
        EMPLOYEE = "employee", "Employee"
        MISP = "misp", "MISP"
        ORG_DIRECT = "org_direct", "Organization direct"

    # source_type -> FK attribute carrying the source of business
    SOURCE_FIELDS = {
        SourceType.AGENT: "agent",
        SourceType.EMPLOYEE: "employee",
        SourceType.MISP: "misp",
    }

    policy_number = models.CharField(max_length=80)
    customer_name = models.CharField(max_length=200)
    product_type = models.CharField(max_length=80, db_index=True)
    provider = models.CharField(max_length=120, db_index=True)
    plan_name = models.CharField(max_length=120, blank=True, null=True)
    premium_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    issue_date = models.DateField()

    source_type = models.CharField(
        max_length=20,
        choices=SourceType.choices,
        default=SourceType.ORG_DIRECT,
        db_index=True,
    )
    agent = models.ForeignKey(
        Agent,
        related_name="policies",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
    )
    employee = models.ForeignKey(
        Employee,
        related_name="policies",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
    )
    misp = models.ForeignKey(
        Misp,
        related_name="policies",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )

    class Meta:
        ordering = ("-issue_date", "-id")
        verbose_name = "Policy"
        verbose_name_plural = "Policies"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "policy_number"),
                name="uq_policy_number_per_company",
            ),
        ]
        indexes = [
            models.Index(
                fields=("company", "provider", "product_type"),
                name="idx_pol_cmp_prov_prod",
            ),
            models.Index(
                fields=("company", "issue_date"),
                name="idx_pol_cmp_issue",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.policy_number} ({self.status})"

    @property
    def source_field(self) -> str | None:
        return self.SOURCE_FIELDS.get(self.source_type)

    @property
    def source(self):
        field = self.source_field
        return getattr(self, field) if field else None

    @property
    def source_id(self) -> int | None:
        field = self.source_field
        return getattr(self, f"{field}_id") if field else None

    def clean(self):
        super().clean()

        errors: dict[str, str] = {}

        if self.premium_amount is not None and self.premium_amount < 0:
            errors["premium_amount"] = "premium_amount cannot be negative."

        expected = self.source_field
        for source_type, field in self.SOURCE_FIELDS.items():
            linked = getattr(self, f"{field}_id") is not None
            if field == expected and not linked:
                errors[field] = f"{field} is required when source_type is '{source_type}'."
            elif field != expected and linked:
                errors[field] = f"{field} must be empty when source_type is '{self.source_type}'."

        if errors:
            raise ValidationError(errors)

        self._ensure_same_company("agent", "employee", "misp")
