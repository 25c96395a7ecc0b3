# Generated manually. Keep in sync with commission/models/.

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


def _range_validators():
    return [
        django.core.validators.MinValueValidator(Decimal("0.00")),
        django.core.validators.MaxValueValidator(Decimal("100.00")),
    ]


def _rate(**kwargs):
    return models.DecimalField(decimal_places=3, max_digits=6, validators=_range_validators(), **kwargs)


def _money(**kwargs):
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(decimal_places=2, max_digits=14, **kwargs)


def _cached_rate():
    return models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=6)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        ("insurance_core", "0001_initial"),
        ("sourcing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionGrid",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("provider", models.CharField(max_length=120)),
                ("product_type", models.CharField(max_length=80)),
                ("plan_name", models.CharField(blank=True, max_length=120, null=True)),
                ("commission_rate", _rate(help_text="Base commission rate (percentage points).")),
                ("reward_rate", _rate(default=Decimal("0.000"))),
                ("bonus_commission_rate", _rate(default=Decimal("0.000"))),
                ("min_premium", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, validators=[django.core.validators.MinValueValidator(Decimal("0.00"))])),
                ("max_premium", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, validators=[django.core.validators.MinValueValidator(Decimal("0.00"))])),
                ("valid_from", models.DateField()),
                ("valid_to", models.DateField(blank=True, null=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="commission_commissiongrid_set", to="customers.company")),
            ],
            options={
                "verbose_name": "Commission Grid",
                "verbose_name_plural": "Commission Grids",
                "ordering": ("provider", "product_type", "plan_name", "-valid_from", "-id"),
                "indexes": [
                    models.Index(fields=["company", "provider", "product_type"], name="idx_comm_grid_cmp_prov_prod"),
                    models.Index(fields=["company", "is_active", "valid_from"], name="idx_comm_grid_cmp_act_from"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("valid_to__isnull", True))
                        | models.Q(("valid_to__gte", models.F("valid_from"))),
                        name="ck_comm_grid_valid_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("min_premium__isnull", True))
                        | models.Q(("max_premium__isnull", True))
                        | models.Q(("max_premium__gte", models.F("min_premium"))),
                        name="ck_comm_grid_premium_band",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CommissionSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("employee_share_percentage", models.DecimalField(blank=True, decimal_places=2, help_text="Used for employee-sourced policies when the employee has no own percentage.", max_digits=5, null=True, validators=_range_validators())),
                ("reporting_override_percentage", models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="Share of insurer commission paid to the reporting employee, out of the broker share.", max_digits=5, validators=_range_validators())),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="commission_commissionsettings_set", to="customers.company")),
                ("default_reporting_employee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="sourcing.employee")),
            ],
            options={
                "verbose_name": "Commission Settings",
                "verbose_name_plural": "Commission Settings",
                "constraints": [
                    models.UniqueConstraint(fields=("company",), name="uq_comm_settings_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PolicyCommission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("calculated", "Calculated"), ("grid_mismatch", "Grid mismatch"), ("config_missing", "Config missing")], db_index=True, default="pending", max_length=20)),
                ("premium", _money()),
                ("base_rate", _cached_rate()),
                ("reward_rate", _cached_rate()),
                ("bonus_rate", _cached_rate()),
                ("total_rate", _cached_rate()),
                ("insurer_commission", _money()),
                ("source_type", models.CharField(blank=True, max_length=20)),
                ("source_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("source_name", models.CharField(blank=True, max_length=200)),
                ("tier_name", models.CharField(blank=True, max_length=100)),
                ("applied_percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("agent_commission", _money()),
                ("employee_commission", _money()),
                ("misp_commission", _money()),
                ("reporting_employee_commission", _money()),
                ("reporting_employee_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("broker_share", _money()),
                ("conflicting_grid_ids", models.JSONField(blank=True, default=list)),
                ("calculated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="commission_policycommission_set", to="customers.company")),
                ("grid", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="policy_commissions", to="commission.commissiongrid")),
                ("policy", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="commission", to="insurance_core.policy")),
            ],
            options={
                "verbose_name": "Policy Commission",
                "verbose_name_plural": "Policy Commissions",
                "ordering": ("-calculated_at", "-id"),
                "indexes": [
                    models.Index(fields=["company", "status"], name="idx_pol_comm_cmp_status"),
                ],
            },
        ),
    ]
