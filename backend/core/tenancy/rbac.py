import logging
from copy import deepcopy
from typing import Iterable

from django.core.exceptions import ValidationError
from django.conf import settings

ROLE_MEMBER = "MEMBER"
ROLE_MANAGER = "MANAGER"
ROLE_OWNER = "OWNER"

VALID_ROLES = frozenset((ROLE_MEMBER, ROLE_MANAGER, ROLE_OWNER))
VALID_METHODS = frozenset(("GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE", "*"))

READ_ROLES = frozenset((ROLE_MEMBER, ROLE_MANAGER, ROLE_OWNER))
WRITE_ROLES = frozenset((ROLE_MANAGER, ROLE_OWNER))
OWNER_ROLES = frozenset((ROLE_OWNER,))
NO_ROLES = frozenset()

logger = logging.getLogger(__name__)


def build_role_matrix(
    *,
    read_roles=READ_ROLES,
    post_roles=WRITE_ROLES,
    put_roles=WRITE_ROLES,
    patch_roles=WRITE_ROLES,
    delete_roles=OWNER_ROLES,
):
    return {
        "GET": frozenset(read_roles),
        "HEAD": frozenset(read_roles),
        "OPTIONS": frozenset(read_roles),
        "POST": frozenset(post_roles),
        "PUT": frozenset(put_roles),
        "PATCH": frozenset(patch_roles),
        "DELETE": frozenset(delete_roles),
    }


READ_ONLY_MATRIX = build_role_matrix(
    post_roles=NO_ROLES,
    put_roles=NO_ROLES,
    patch_roles=NO_ROLES,
    delete_roles=NO_ROLES,
)

DEFAULT_RESOURCE_ROLE_MATRICES = {
    "policies": build_role_matrix(),
    "agents": build_role_matrix(),
    "misps": build_role_matrix(),
    "employees": build_role_matrix(),
    "commission_tiers": build_role_matrix(),
    "commission_grids": build_role_matrix(
        post_roles=OWNER_ROLES,
        put_roles=OWNER_ROLES,
        patch_roles=OWNER_ROLES,
    ),
    "commission_settings": build_role_matrix(
        put_roles=OWNER_ROLES,
        patch_roles=OWNER_ROLES,
    ),
    # POST triggers a recalculation; results themselves are never edited.
    "commission_recalculation": build_role_matrix(
        read_roles=WRITE_ROLES,
        put_roles=NO_ROLES,
        patch_roles=NO_ROLES,
        delete_roles=NO_ROLES,
    ),
    "commission_reports": READ_ONLY_MATRIX,
    "bulk_imports": build_role_matrix(
        read_roles=WRITE_ROLES,
        put_roles=NO_ROLES,
        patch_roles=NO_ROLES,
        delete_roles=NO_ROLES,
    ),
}

DEFAULT_TENANT_ROLE_MATRIX = build_role_matrix()
KNOWN_RBAC_RESOURCES = frozenset(DEFAULT_RESOURCE_ROLE_MATRICES.keys())


def _normalize_roles(raw_roles: Iterable[str]) -> frozenset[str]:
    if not isinstance(raw_roles, (list, tuple, set, frozenset)):
        return frozenset()
    normalized = {str(role).upper() for role in raw_roles}
    return frozenset(role for role in normalized if role in VALID_ROLES)


def validate_rbac_overrides_schema(overrides, *, allow_unknown_resources=False) -> None:
    if overrides in (None, {}):
        return

    if not isinstance(overrides, dict):
        raise ValidationError("rbac_overrides must be a JSON object (dictionary).")

    errors = {}
    for resource_key, method_map in overrides.items():
        resource_name = str(resource_key)
        resource_errors = []

        if not allow_unknown_resources and resource_name not in KNOWN_RBAC_RESOURCES:
            resource_errors.append(
                f"Unknown resource '{resource_name}'. Allowed: {sorted(KNOWN_RBAC_RESOURCES)}"
            )

        if not isinstance(method_map, dict):
            resource_errors.append("Resource value must be an object of HTTP methods to role lists.")
            errors[resource_name] = resource_errors
            continue

        for method, raw_roles in method_map.items():
            method_name = str(method).upper()
            if method_name not in VALID_METHODS:
                resource_errors.append(
                    f"Method '{method_name}' is invalid. Allowed: {sorted(VALID_METHODS)}"
                )
                continue

            if not isinstance(raw_roles, list) or not raw_roles:
                resource_errors.append(
                    f"Method '{method_name}' must contain a non-empty role list."
                )
                continue

            normalized_roles = _normalize_roles(raw_roles)
            if len(normalized_roles) != len(set(str(r).upper() for r in raw_roles)):
                resource_errors.append(
                    f"Method '{method_name}' contains invalid roles. "
                    f"Allowed roles: {sorted(VALID_ROLES)}"
                )

        if resource_errors:
            errors[resource_name] = resource_errors

    if errors:
        raise ValidationError(errors)


def _apply_overrides(matrices: dict, overrides: dict | None) -> dict:
    if not isinstance(overrides, dict):
        return matrices

    for resource_key, method_map in overrides.items():
        if not isinstance(method_map, dict):
            continue
        resource_name = str(resource_key)
        resource_matrix = matrices.setdefault(resource_name, {})
        for method, raw_roles in method_map.items():
            normalized_roles = _normalize_roles(raw_roles)
            if not normalized_roles:
                continue
            resource_matrix[str(method).upper()] = normalized_roles
    return matrices


def get_resource_role_matrices(company=None) -> dict:
    matrices = deepcopy(DEFAULT_RESOURCE_ROLE_MATRICES)

    global_overrides = getattr(settings, "TENANT_ROLE_MATRICES", {})
    try:
        validate_rbac_overrides_schema(global_overrides)
        _apply_overrides(matrices, global_overrides)
    except ValidationError as exc:
        logger.warning("rbac.global_overrides.ignored errors=%s", exc.messages)

    if company is not None:
        tenant_overrides = getattr(company, "rbac_overrides", {})
        try:
            validate_rbac_overrides_schema(tenant_overrides)
            _apply_overrides(matrices, tenant_overrides)
        except ValidationError as exc:
            logger.warning(
                "rbac.tenant_overrides.ignored company_id=%s errors=%s",
                company.id,
                exc.messages,
            )

    return matrices


def get_role_matrix_for_resource(resource_key: str, company=None) -> dict:
    matrices = get_resource_role_matrices(company=company)
    return matrices.get(resource_key, DEFAULT_TENANT_ROLE_MATRIX)


def role_can(role_matrix, role, method):
    allowed_roles = role_matrix.get(method, role_matrix.get("*", frozenset()))
    return role in allowed_roles


