from django.urls import path

from bulk_import.views import (
    BulkImportTemplateAPIView,
    BulkImportUploadAPIView,
    ImportSessionDetailAPIView,
    ImportSessionErrorReportAPIView,
    ImportSessionListAPIView,
)

urlpatterns = [
    path("sessions/", ImportSessionListAPIView.as_view(), name="import-sessions-list"),
    path("sessions/<int:pk>/", ImportSessionDetailAPIView.as_view(), name="import-sessions-detail"),
    path(
        "sessions/<int:pk>/errors/",
        ImportSessionErrorReportAPIView.as_view(),
        name="import-sessions-errors",
    ),
    path(
        "<slug:entity_type>/template/",
        BulkImportTemplateAPIView.as_view(),
        name="import-template",
    ),
    path("<slug:entity_type>/", BulkImportUploadAPIView.as_view(), name="import-upload"),
]
