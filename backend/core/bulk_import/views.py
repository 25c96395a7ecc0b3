from django.http import Http404
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from bulk_import.models import ImportErrorLog, ImportSession
from bulk_import.schemas import get_schema
from bulk_import.serializers import (
    ImportErrorLogSerializer,
    ImportSessionSerializer,
    ImportUploadSerializer,
)
from bulk_import.services import csv_response, import_csv, write_error_report, write_template
from tenancy.permissions import IsTenantRoleAllowed


def _require_entity_type(entity_type: str) -> str:
    if get_schema(entity_type) is None:
        raise Http404(f"Unknown import entity type '{entity_type}'.")
    return entity_type.strip().lower()


class BulkImportUploadAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    parser_classes = [MultiPartParser, FormParser]
    tenant_resource_key = "bulk_imports"

    def post(self, request, entity_type):
        entity_type = _require_entity_type(entity_type)
        serializer = ImportUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        uploaded = serializer.validated_data["file"]
        session = import_csv(
            request.company,
            entity_type,
            uploaded,
            user=request.user,
            file_name=uploaded.name,
        )

        payload = ImportSessionSerializer(session).data
        errors = ImportErrorLog.all_objects.filter(session=session).order_by("row_number", "id")[:100]
        payload["errors"] = ImportErrorLogSerializer(errors, many=True).data
        if session.status == ImportSession.Status.REJECTED:
            return Response(payload, status=status.HTTP_400_BAD_REQUEST)
        return Response(payload, status=status.HTTP_201_CREATED)


class BulkImportTemplateAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "bulk_imports"

    def get(self, request, entity_type):
        entity_type = _require_entity_type(entity_type)
        response = csv_response(f"{entity_type}-template")
        write_template(response, entity_type)
        return response


class ImportSessionListAPIView(generics.ListAPIView):
    permission_classes = [IsTenantRoleAllowed]
    serializer_class = ImportSessionSerializer
    tenant_resource_key = "bulk_imports"

    def get_queryset(self):
        queryset = ImportSession.all_objects.filter(company=self.request.company).select_related(
            "uploaded_by"
        )
        entity_type = (self.request.query_params.get("entity_type") or "").strip().lower()
        if entity_type:
            queryset = queryset.filter(entity_type=entity_type)
        return queryset.order_by("-started_at", "-id")


class ImportSessionDetailAPIView(generics.RetrieveAPIView):
    permission_classes = [IsTenantRoleAllowed]
    serializer_class = ImportSessionSerializer
    tenant_resource_key = "bulk_imports"

    def get_queryset(self):
        return ImportSession.all_objects.filter(company=self.request.company)


class ImportSessionErrorReportAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "bulk_imports"

    def get(self, request, pk):
        session = get_object_or_404(ImportSession.all_objects, pk=pk, company=request.company)
        errors = ImportErrorLog.all_objects.filter(company=request.company, session=session).order_by(
            "row_number", "id"
        )
        response = csv_response(f"{session.entity_type}-import-{session.pk}-errors")
        write_error_report(response, errors)
        return response
