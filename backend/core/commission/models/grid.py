from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.db.models.functions import Trim

from tenancy.models import BaseTenantModel


_RATE_VALIDATORS = [
    MinValueValidator(Decimal("0.00")),
    MaxValueValidator(Decimal("100.00")),
]
_MIN_ZERO = MinValueValidator(Decimal("0.00"))


def _rate_field(**kwargs):
    return models.DecimalField(
        max_digits=6,
        decimal_places=3,
        validators=_RATE_VALIDATORS,
        **kwargs,
    )


class CommissionGrid(BaseTenantModel):
    """Insurer commission rates for a provider/product/plan, bounded in time and premium."""

    provider = models.CharField(max_length=120)
    product_type = models.CharField(max_length=80)
    plan_name = models.CharField(max_length=120, blank=True, null=True)

    commission_rate = _rate_field(help_text="Base commission rate (percentage points).")
    reward_rate = _rate_field(default=Decimal("0.000"))
    bonus_commission_rate = _rate_field(default=Decimal("0.000"))

    min_premium = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[_MIN_ZERO],
    )
    max_premium = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[_MIN_ZERO],
    )
    valid_from = models.DateField()
    valid_to = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ("provider", "product_type", "plan_name", "-valid_from", "-id")
        verbose_name = "Commission Grid"
        verbose_name_plural = "Commission Grids"
        constraints = [
            models.CheckConstraint(
                condition=Q(valid_to__isnull=True) | Q(valid_to__gte=F("valid_from")),
                name="ck_comm_grid_valid_range",
            ),
            models.CheckConstraint(
                condition=Q(min_premium__isnull=True)
                | Q(max_premium__isnull=True)
                | Q(max_premium__gte=F("min_premium")),
                name="ck_comm_grid_premium_band",
            ),
        ]
        indexes = [
            models.Index(
                fields=("company", "provider", "product_type"),
                name="idx_comm_grid_cmp_prov_prod",
            ),
            models.Index(
                fields=("company", "is_active", "valid_from"),
                name="idx_comm_grid_cmp_act_from",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        plan = f" / {self.plan_name}" if self.plan_name else ""
        return f"{self.provider} {self.product_type}{plan} ({self.valid_from})"

    @property
    def total_rate(self) -> Decimal:
        return (
            (self.commission_rate or Decimal("0"))
            + (self.reward_rate or Decimal("0"))
            + (self.bonus_commission_rate or Decimal("0"))
        )

    def normalize_keys(self):
        """Trim provider, product_type and plan_name; a blank plan is stored as NULL."""

        self.provider = (self.provider or "").strip()
        self.product_type = (self.product_type or "").strip()
        self.plan_name = (self.plan_name or "").strip() or None

    def save(self, *args, **kwargs):
        self.normalize_keys()
        return super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        self.normalize_keys()

        errors: dict[str, str] = {}
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            errors["valid_to"] = "valid_to must be greater than or equal to valid_from."
        if (
            self.min_premium is not None
            and self.max_premium is not None
            and self.max_premium < self.min_premium
        ):
            errors["max_premium"] = "max_premium must be greater than or equal to min_premium."
        if errors:
            raise ValidationError(errors)

        if self.is_active and self.company_id and self.valid_from:
            self._reject_overlaps()

    def _reject_overlaps(self):
        from commission.services.commission_engine import grids_overlap
        from commission.services.recalculation import grid_row_from_model

        siblings = CommissionGrid.all_objects.annotate(
            trimmed_provider=Trim("provider"),
            trimmed_product_type=Trim("product_type"),
        ).filter(
            company_id=self.company_id,
            is_active=True,
            trimmed_provider__iexact=self.provider,
            trimmed_product_type__iexact=self.product_type,
        )
        if self.pk:
            siblings = siblings.exclude(pk=self.pk)

        current = grid_row_from_model(self)
        clashes = [row.pk for row in siblings if grids_overlap(current, grid_row_from_model(row))]
        if clashes:
            raise ValidationError(
                f"Grid overlaps active rows {clashes} for the same provider, "
                "product type and plan."
            )
