from rest_framework import serializers

from bulk_import.models import ImportErrorLog, ImportSession


class ImportUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class ImportErrorLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ImportErrorLog
        fields = ("row_number", "field", "value", "message", "error_type")
        read_only_fields = fields


class ImportSessionSerializer(serializers.ModelSerializer):
    uploaded_by_username = serializers.CharField(
        source="uploaded_by.username",
        read_only=True,
        default=None,
    )
    succeeded_rows = serializers.IntegerField(read_only=True)

    class Meta:
        model = ImportSession
        fields = (
            "id",
            "entity_type",
            "file_name",
            "status",
            "rejection_reason",
            "total_rows",
            "created_rows",
            "updated_rows",
            "succeeded_rows",
            "failed_rows",
            "uploaded_by",
            "uploaded_by_username",
            "started_at",
            "finished_at",
        )
        read_only_fields = fields
