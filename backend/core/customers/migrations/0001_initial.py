# Generated manually. Keep in sync with customers/models.py.

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import tenancy.rbac


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150)),
                ("tenant_code", models.SlugField(help_text="Identifier used in the X-Tenant-ID header.", max_length=63, unique=True)),
                ("subdomain", models.SlugField(help_text="Tenant subdomain used for host-based tenant resolution.", max_length=63, unique=True)),
                ("is_active", models.BooleanField(default=True)),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("SUSPENDED", "Suspended"), ("CANCELLED", "Cancelled")], db_index=True, default="ACTIVE", max_length=20)),
                ("currency", models.CharField(default="INR", max_length=3)),
                ("rbac_overrides", models.JSONField(blank=True, default=dict, help_text="Optional tenant RBAC overrides. Example: {'commission_grids': {'POST': ['OWNER', 'MANAGER']}}", validators=[tenancy.rbac.validate_rbac_overrides_schema])),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Company",
                "verbose_name_plural": "Companies",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="CompanyMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("MEMBER", "Member"), ("MANAGER", "Manager"), ("OWNER", "Owner")], default="MEMBER", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="customers.company")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="company_memberships", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Company Membership",
                "verbose_name_plural": "Company Memberships",
                "ordering": ("company__name", "user__username"),
                "constraints": [
                    models.UniqueConstraint(fields=("company", "user"), name="uq_company_membership_company_user"),
                ],
            },
        ),
    ]
