from __future__ import annotations

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from tenancy.models import BaseTenantModel


_PERCENTAGE_VALIDATORS = [
    MinValueValidator(Decimal("0.00")),
    MaxValueValidator(Decimal("100.00")),
]


class CommissionSettings(BaseTenantModel):
    """Per-tenant distribution policy."""

    employee_share_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=_PERCENTAGE_VALIDATORS,
        help_text="Used for employee-sourced policies when the employee has no own percentage.",
    )
    reporting_override_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=_PERCENTAGE_VALIDATORS,
        help_text="Share of insurer commission paid to the reporting employee, out of the broker share.",
    )
    default_reporting_employee = models.ForeignKey(
        "sourcing.Employee",
        related_name="+",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    class Meta:
        verbose_name = "Commission Settings"
        verbose_name_plural = "Commission Settings"
        constraints = [
            models.UniqueConstraint(
                fields=("company",),
                name="uq_comm_settings_company",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Commission settings for {self.company_id}"

    @classmethod
    def for_company(cls, company) -> "CommissionSettings":
        settings_row, _ = cls.all_objects.get_or_create(company=company)
        return settings_row

    def clean(self):
        super().clean()
        self._ensure_same_company("default_reporting_employee")

    def to_distribution_config(self):
        from commission.services.commission_engine import DistributionConfig

        return DistributionConfig(
            employee_share_percentage=self.employee_share_percentage,
            reporting_override_percentage=self.reporting_override_percentage or Decimal("0.00"),
            default_reporting_employee_id=self.default_reporting_employee_id,
        )
