# Generated manually. Keep in sync with sourcing/models.py.

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


def _percentage(**kwargs):
    return models.DecimalField(
        decimal_places=2,
        max_digits=5,
        validators=[
            django.core.validators.MinValueValidator(Decimal("0.00")),
            django.core.validators.MaxValueValidator(Decimal("100.00")),
        ],
        **kwargs,
    )


STATUS_CHOICES = [
    ("ACTIVE", "Active"),
    ("INACTIVE", "Inactive"),
    ("SUSPENDED", "Suspended"),
    ("TERMINATED", "Terminated"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("customers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=100)),
                ("base_percentage", _percentage()),
                ("description", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sourcing_commissiontier_set", to="customers.company")),
            ],
            options={
                "verbose_name": "Commission Tier",
                "verbose_name_plural": "Commission Tiers",
                "ordering": ("name", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uq_comm_tier_company_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Employee",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("employee_code", models.CharField(max_length=40)),
                ("name", models.CharField(max_length=150)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=20)),
                ("base_percentage", _percentage(blank=True, help_text="Share of insurer commission on self-sourced policies. Empty falls back to the tenant employee share.", null=True)),
                ("status", models.CharField(choices=STATUS_CHOICES, db_index=True, default="ACTIVE", max_length=20)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sourcing_employee_set", to="customers.company")),
                ("reporting_manager", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="direct_reports", to="sourcing.employee")),
            ],
            options={
                "verbose_name": "Employee",
                "verbose_name_plural": "Employees",
                "ordering": ("name", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("company", "employee_code"), name="uq_employee_code_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Agent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("agent_code", models.CharField(max_length=40)),
                ("name", models.CharField(max_length=150)),
                ("agent_type", models.CharField(choices=[("POSP", "POSP"), ("MISP", "MISP")], default="POSP", max_length=10)),
                ("base_percentage", _percentage(blank=True, null=True)),
                ("override_percentage", _percentage(blank=True, help_text="Takes precedence over the tier and base percentage.", null=True)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=20)),
                ("pan_number", models.CharField(blank=True, max_length=10)),
                ("status", models.CharField(choices=STATUS_CHOICES, db_index=True, default="ACTIVE", max_length=20)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sourcing_agent_set", to="customers.company")),
                ("tier", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="agents", to="sourcing.commissiontier")),
                ("reporting_employee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reporting_agents", to="sourcing.employee")),
            ],
            options={
                "verbose_name": "Agent",
                "verbose_name_plural": "Agents",
                "ordering": ("name", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("company", "agent_code"), name="uq_agent_code_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Misp",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("channel_partner_name", models.CharField(max_length=200)),
                ("dealer_code", models.CharField(blank=True, max_length=40)),
                ("percentage", _percentage(blank=True, null=True)),
                ("override_percentage", _percentage(blank=True, null=True)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=20)),
                ("gst_number", models.CharField(blank=True, max_length=15)),
                ("status", models.CharField(choices=STATUS_CHOICES, db_index=True, default="ACTIVE", max_length=20)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sourcing_misp_set", to="customers.company")),
                ("tier", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="misps", to="sourcing.commissiontier")),
                ("reporting_employee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reporting_misps", to="sourcing.employee")),
            ],
            options={
                "verbose_name": "MISP",
                "verbose_name_plural": "MISPs",
                "ordering": ("channel_partner_name", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("company", "channel_partner_name"), name="uq_misp_name_company"),
                ],
            },
        ),
    ]
