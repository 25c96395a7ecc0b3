# Generated manually. Keep in sync with insurance_core/models/policy.py.

from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        ("sourcing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Policy",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("policy_number", models.CharField(max_length=80)),
                ("customer_name", models.CharField(max_length=200)),
                ("product_type", models.CharField(db_index=True, max_length=80)),
                ("provider", models.CharField(db_index=True, max_length=120)),
                ("plan_name", models.CharField(blank=True, max_length=120, null=True)),
                ("premium_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("issue_date", models.DateField()),
                ("source_type", models.CharField(choices=[("agent", "Agent"), ("employee", "Employee"), ("misp", "MISP"), ("org_direct", "Organization direct")], db_index=True, default="org_direct", max_length=20)),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("CANCELLED", "Cancelled"), ("EXPIRED", "Expired")], db_index=True, default="ACTIVE", max_length=20)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="insurance_core_policy_set", to="customers.company")),
                ("agent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="policies", to="sourcing.agent")),
                ("employee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="policies", to="sourcing.employee")),
                ("misp", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="policies", to="sourcing.misp")),
            ],
            options={
                "verbose_name": "Policy",
                "verbose_name_plural": "Policies",
                "ordering": ("-issue_date", "-id"),
                "constraints": [
                    models.UniqueConstraint(fields=("company", "policy_number"), name="uq_policy_number_per_company"),
                ],
                "indexes": [
                    models.Index(fields=["company", "provider", "product_type"], name="idx_pol_cmp_prov_prod"),
                    models.Index(fields=["company", "issue_date"], name="idx_pol_cmp_issue"),
                ],
            },
        ),
    ]
