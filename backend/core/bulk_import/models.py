from django.conf import settings
from django.db import models

from tenancy.models import BaseTenantModel


class EntityType(models.TextChoices):
    AGENTS = "agents", "Agents"
    EMPLOYEES = "employees", "Employees"
    MISPS = "misps", "MISPs"
    COMMISSION_TIERS = "commission_tiers", "Commission tiers"
    COMMISSION_GRIDS = "commission_grids", "Commission grids"
    POLICIES = "policies", "Policies"


class ImportSession(BaseTenantModel):
    """One CSV upload and its outcome."""

    class Status(models.TextChoices):
        PROCESSING = "PROCESSING", "Processing"
        COMPLETED = "COMPLETED", "Completed"
        REJECTED = "REJECTED", "Rejected"

    entity_type = models.CharField(max_length=30, choices=EntityType.choices, db_index=True)
    file_name = models.CharField(max_length=255, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PROCESSING,
        db_index=True,
    )
    rejection_reason = models.TextField(blank=True)

    total_rows = models.PositiveIntegerField(default=0)
    created_rows = models.PositiveIntegerField(default=0)
    updated_rows = models.PositiveIntegerField(default=0)
    failed_rows = models.PositiveIntegerField(default=0)

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="import_sessions",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    started_at = models.DateTimeField(auto_now_add=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-started_at", "-id")
        verbose_name = "Import Session"
        verbose_name_plural = "Import Sessions"
        indexes = [
            models.Index(
                fields=("company", "entity_type", "started_at"),
                name="idx_import_cmp_type_started",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity_type} import #{self.pk} ({self.status})"

    @property
    def succeeded_rows(self) -> int:
        return self.created_rows + self.updated_rows


class ImportErrorLog(BaseTenantModel):
    class ErrorType(models.TextChoices):
        VALIDATION = "validation_error", "Validation error"
        STORE = "store_error", "Store error"

    session = models.ForeignKey(
        ImportSession,
        related_name="errors",
        on_delete=models.CASCADE,
    )
    row_number = models.PositiveIntegerField()
    field = models.CharField(max_length=100, blank=True)
    value = models.TextField(blank=True)
    message = models.TextField()
    error_type = models.CharField(
        max_length=20,
        choices=ErrorType.choices,
        default=ErrorType.VALIDATION,
    )

    class Meta:
        ordering = ("row_number", "id")
        verbose_name = "Import Error"
        verbose_name_plural = "Import Errors"

    def __str__(self) -> str:  # pragma: no cover
        return f"Row {self.row_number} {self.field}: {self.message}"
