"""
URL configuration for brokerage_backend project.
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path
from rest_framework.authtoken.views import obtain_auth_token


def healthz(_request):
    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz/", healthz, name="healthz"),
    path("api/auth/token/", obtain_auth_token, name="api-token"),
    path("api/commissions/", include("commission.urls")),
    path("api/imports/", include("bulk_import.urls")),
    path("api/", include("insurance_core.api.urls")),
    path("api/", include("sourcing.urls")),
]
