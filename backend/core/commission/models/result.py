from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from tenancy.models import BaseTenantModel


def _money_field(**kwargs):
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(max_digits=14, decimal_places=2, **kwargs)


def _rate_field(**kwargs):
    kwargs.setdefault("default", Decimal("0.000"))
    return models.DecimalField(max_digits=6, decimal_places=3, **kwargs)


class PolicyCommission(BaseTenantModel):
    """Cached commission result of one policy.

    Derived data: overwritten by every recalculation, never edited by hand.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CALCULATED = "calculated", "Calculated"
        GRID_MISMATCH = "grid_mismatch", "Grid mismatch"
        CONFIG_MISSING = "config_missing", "Config missing"

    policy = models.OneToOneField(
        "insurance_core.Policy",
        related_name="commission",
        on_delete=models.CASCADE,
    )
    grid = models.ForeignKey(
        "commission.CommissionGrid",
        related_name="policy_commissions",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )

    premium = _money_field()
    base_rate = _rate_field()
    reward_rate = _rate_field()
    bonus_rate = _rate_field()
    total_rate = _rate_field()
    insurer_commission = _money_field()

    source_type = models.CharField(max_length=20, blank=True)
    source_id = models.PositiveBigIntegerField(null=True, blank=True)
    source_name = models.CharField(max_length=200, blank=True)
    tier_name = models.CharField(max_length=100, blank=True)
    applied_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
    )

    agent_commission = _money_field()
    employee_commission = _money_field()
    misp_commission = _money_field()
    reporting_employee_commission = _money_field()
    reporting_employee_id = models.PositiveBigIntegerField(null=True, blank=True)
    broker_share = _money_field()

    conflicting_grid_ids = models.JSONField(default=list, blank=True)
    calculated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("-calculated_at", "-id")
        verbose_name = "Policy Commission"
        verbose_name_plural = "Policy Commissions"
        indexes = [
            models.Index(
                fields=("company", "status"),
                name="idx_pol_comm_cmp_status",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Commission {self.policy_id} ({self.status})"
