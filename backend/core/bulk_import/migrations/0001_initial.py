# Generated manually. Keep in sync with bulk_import/models.py.

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ImportSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("entity_type", models.CharField(choices=[("agents", "Agents"), ("employees", "Employees"), ("misps", "MISPs"), ("commission_tiers", "Commission tiers"), ("commission_grids", "Commission grids"), ("policies", "Policies")], db_index=True, max_length=30)),
                ("file_name", models.CharField(blank=True, max_length=255)),
                ("status", models.CharField(choices=[("PROCESSING", "Processing"), ("COMPLETED", "Completed"), ("REJECTED", "Rejected")], db_index=True, default="PROCESSING", max_length=20)),
                ("rejection_reason", models.TextField(blank=True)),
                ("total_rows", models.PositiveIntegerField(default=0)),
                ("created_rows", models.PositiveIntegerField(default=0)),
                ("updated_rows", models.PositiveIntegerField(default=0)),
                ("failed_rows", models.PositiveIntegerField(default=0)),
                ("started_at", models.DateTimeField(auto_now_add=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bulk_import_importsession_set", to="customers.company")),
                ("uploaded_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="import_sessions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Import Session",
                "verbose_name_plural": "Import Sessions",
                "ordering": ("-started_at", "-id"),
                "indexes": [
                    models.Index(fields=["company", "entity_type", "started_at"], name="idx_import_cmp_type_started"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ImportErrorLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("row_number", models.PositiveIntegerField()),
                ("field", models.CharField(blank=True, max_length=100)),
                ("value", models.TextField(blank=True)),
                ("message", models.TextField()),
                ("error_type", models.CharField(choices=[("validation_error", "Validation error"), ("store_error", "Store error")], default="validation_error", max_length=20)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bulk_import_importerrorlog_set", to="customers.company")),
                ("session", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="errors", to="bulk_import.importsession")),
            ],
            options={
                "verbose_name": "Import Error",
                "verbose_name_plural": "Import Errors",
                "ordering": ("row_number", "id"),
            },
        ),
    ]
