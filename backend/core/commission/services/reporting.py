"""Reconciliation, totals and CSV export of commission results."""

from __future__ import annotations

import csv
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

from django.db.models import Q
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_date

from commission.models import PolicyCommission
from commission.services.commission_engine import (
    STATUS_CALCULATED,
    STATUS_CONFIG_MISSING,
    STATUS_GRID_MISMATCH,
    STATUS_PENDING,
    CommissionResult,
)
from insurance_core.models import Policy


_CENT = Decimal("0.01")
_RATE_UNIT = Decimal("0.001")
_ZERO = Decimal("0.00")

EXPORT_COLUMNS = (
    "policy_number",
    "customer_name",
    "product_type",
    "provider",
    "premium",
    "base_rate",
    "reward_rate",
    "bonus_rate",
    "total_rate",
    "insurer_commission",
    "source_type",
    "source_name",
    "agent_commission",
    "employee_commission",
    "misp_commission",
    "reporting_employee_commission",
    "broker_share",
    "status",
)

MONEY_COLUMNS = frozenset(
    (
        "premium",
        "insurer_commission",
        "agent_commission",
        "employee_commission",
        "misp_commission",
        "reporting_employee_commission",
        "broker_share",
    )
)

RATE_COLUMNS = frozenset(("base_rate", "reward_rate", "bonus_rate", "total_rate"))

_SPLIT_FIELDS = (
    "agent_commission",
    "employee_commission",
    "misp_commission",
    "reporting_employee_commission",
    "broker_share",
)

_TOTAL_FIELDS = (
    "premium",
    "insurer_commission",
    *_SPLIT_FIELDS,
)


def result_from_cache(row: PolicyCommission) -> CommissionResult:
    policy = row.policy
    return CommissionResult(
        policy_id=policy.pk,
        policy_number=policy.policy_number,
        customer_name=policy.customer_name,
        product_type=policy.product_type,
        provider=policy.provider,
        premium=row.premium,
        issue_date=policy.issue_date,
        source_type=row.source_type,
        status=row.status,
        source_id=row.source_id,
        source_name=row.source_name or None,
        grid_id=row.grid_id,
        base_rate=row.base_rate,
        reward_rate=row.reward_rate,
        bonus_rate=row.bonus_rate,
        total_rate=row.total_rate,
        insurer_commission=row.insurer_commission,
        applied_percentage=row.applied_percentage,
        tier_name=row.tier_name or None,
        agent_commission=row.agent_commission,
        employee_commission=row.employee_commission,
        misp_commission=row.misp_commission,
        reporting_employee_commission=row.reporting_employee_commission,
        reporting_employee_id=row.reporting_employee_id,
        broker_share=row.broker_share,
        conflicting_grid_ids=tuple(row.conflicting_grid_ids or ()),
    )


def reconcile(result: CommissionResult) -> list[str]:
    """Return the discrepancies found in one result (empty when consistent)."""

    problems: list[str] = []

    for name in ("insurer_commission", *_SPLIT_FIELDS):
        if getattr(result, name) < 0:
            problems.append(f"{name} is negative ({getattr(result, name)}).")

    if result.status == STATUS_GRID_MISMATCH:
        non_zero = [name for name in ("insurer_commission", *_SPLIT_FIELDS) if getattr(result, name)]
        if non_zero:
            problems.append(f"grid_mismatch result carries amounts in {', '.join(non_zero)}.")
        return problems

    if result.status in (STATUS_CALCULATED, STATUS_CONFIG_MISSING):
        difference = abs(result.distributed_total - result.insurer_commission)
        if difference > _CENT:
            problems.append(
                f"Distribution {result.distributed_total} differs from insurer commission "
                f"{result.insurer_commission} by {difference}."
            )
    return problems


def summarize(results: Iterable[CommissionResult]) -> dict[str, Any]:
    totals = {name: _ZERO for name in _TOTAL_FIELDS}
    by_status = {
        STATUS_PENDING: 0,
        STATUS_CALCULATED: 0,
        STATUS_GRID_MISMATCH: 0,
        STATUS_CONFIG_MISSING: 0,
    }
    count = 0
    for result in results:
        count += 1
        for name in _TOTAL_FIELDS:
            totals[name] += getattr(result, name)
        by_status[result.status] = by_status.get(result.status, 0) + 1

    return {
        "policies": count,
        **{name: _money(value) for name, value in totals.items()},
        "by_status": by_status,
    }


def filter_commissions(queryset, params: Mapping[str, Any]):
    """Apply report filters to a PolicyCommission queryset.

    Supported keys: product_type, provider, source_type, status,
    policy_status, date_from, date_to (policy issue date, inclusive) and
    search (policy number or customer name).
    """

    product_type = (params.get("product_type") or "").strip()
    if product_type:
        queryset = queryset.filter(policy__product_type__iexact=product_type)

    provider = (params.get("provider") or "").strip()
    if provider:
        queryset = queryset.filter(policy__provider__iexact=provider)

    source_type = (params.get("source_type") or "").strip().lower()
    if source_type:
        queryset = queryset.filter(source_type=source_type)

    status = (params.get("status") or "").strip().lower()
    if status:
        queryset = queryset.filter(status=status)

    policy_status = (params.get("policy_status") or "").strip()
    if policy_status:
        queryset = queryset.filter(policy__status__iexact=policy_status)

    date_from = _parse_date(params.get("date_from"))
    if date_from:
        queryset = queryset.filter(policy__issue_date__gte=date_from)

    date_to = _parse_date(params.get("date_to"))
    if date_to:
        queryset = queryset.filter(policy__issue_date__lte=date_to)

    search = (params.get("search") or "").strip()
    if search:
        queryset = queryset.filter(
            Q(policy__policy_number__icontains=search) | Q(policy__customer_name__icontains=search)
        )
    return queryset


def commission_queryset(company):
    return (
        PolicyCommission.all_objects.filter(company=company)
        .select_related("policy")
        .order_by("-policy__issue_date", "policy__policy_number", "id")
    )


def reversal_candidates(queryset):
    """Cancelled policies whose cached result still pays a source or reporting employee."""

    paid = (
        Q(agent_commission__gt=0)
        | Q(employee_commission__gt=0)
        | Q(misp_commission__gt=0)
        | Q(reporting_employee_commission__gt=0)
    )
    return queryset.filter(paid, policy__status=Policy.Status.CANCELLED)


def _parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        return parse_date(raw)
    except ValueError:
        return None


def _money(value: Any) -> Decimal:
    return Decimal(value or 0).quantize(_CENT, rounding=ROUND_HALF_UP)


def _format_cell(result: CommissionResult, column: str) -> str:
    value = getattr(result, column)
    if column in MONEY_COLUMNS:
        return f"{_money(value):.2f}"
    if column in RATE_COLUMNS:
        # rates are stored with three decimals
        return f"{Decimal(value or 0).quantize(_RATE_UNIT, rounding=ROUND_HALF_UP):.3f}"
    return "" if value is None else str(value)


def write_commission_csv(stream, results: Iterable[CommissionResult]) -> int:
    """Write the export header and one row per result to `stream`.

    Returns the number of data rows written.
    """

    writer = csv.writer(stream)
    writer.writerow(EXPORT_COLUMNS)
    rows = 0
    for result in results:
        writer.writerow([_format_cell(result, column) for column in EXPORT_COLUMNS])
        rows += 1
    return rows


def commission_csv_response(results: Iterable[CommissionResult], filename_prefix: str) -> HttpResponse:
    filename = f"{filename_prefix}-{timezone.localdate().isoformat()}"
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}.csv"'
    # UTF-8 BOM for Excel compatibility
    response.write("\ufeff")
    write_commission_csv(response, results)
    return response
