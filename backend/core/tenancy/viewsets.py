from django.db.models import ProtectedError
from rest_framework import status, viewsets
from rest_framework.exceptions import APIException

from tenancy.permissions import IsTenantRoleAllowed


class ResourceInUse(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource is referenced by other records and cannot be deleted."
    default_code = "resource_in_use"


class TenantModelViewSet(viewsets.ModelViewSet):
    """ModelViewSet bound to `request.company`.

    Subclasses set `model`, `serializer_class`, `tenant_resource_key` and
    optionally `ordering`/`select_related`, and may narrow the queryset in
    `filter_queryset_params`.
    """

    permission_classes = [IsTenantRoleAllowed]
    model = None
    ordering = ()
    select_related = ()

    def get_queryset(self):
        company = getattr(self.request, "company", None)
        if company is None:
            return self.model.objects.none()

        queryset = self.model.all_objects.filter(company=company)
        if self.select_related:
            queryset = queryset.select_related(*self.select_related)
        if self.ordering:
            queryset = queryset.order_by(*self.ordering)
        return self.filter_queryset_params(queryset)

    def filter_queryset_params(self, queryset):
        return queryset

    def get_serializer_context(self):
        ctx = super().get_serializer_context()
        ctx["company"] = getattr(self.request, "company", None)
        return ctx

    def perform_create(self, serializer):
        serializer.save(company=self.request.company)

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except ProtectedError as exc:
            raise ResourceInUse() from exc
