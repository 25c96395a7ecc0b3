from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from django.conf import settings
from django.db import DatabaseError, InterfaceError, OperationalError, connection, transaction
from django.utils import timezone

from commission.models import CommissionGrid, CommissionSettings, PolicyCommission
from commission.services.commission_engine import (
    STATUS_CALCULATED,
    STATUS_CONFIG_MISSING,
    STATUS_GRID_MISMATCH,
    CommissionEngineError,
    CommissionResult,
    GridRow,
    PolicyFacts,
    SourceProfile,
    resolve_commission,
)
from insurance_core.models import Policy


logger = logging.getLogger(__name__)

OUTCOME_INVALID_POLICY = "invalid_policy"
OUTCOME_TRANSIENT_STORE_ERROR = "transient_store_error"

OUTCOMES = (
    STATUS_CALCULATED,
    STATUS_GRID_MISMATCH,
    STATUS_CONFIG_MISSING,
    OUTCOME_INVALID_POLICY,
    OUTCOME_TRANSIENT_STORE_ERROR,
)


class RecalculationAborted(CommissionEngineError):
    """The batch stopped early; `completed` policies were processed."""

    def __init__(self, message: str, *, completed: int, remaining: int, report=None):
        super().__init__(message)
        self.completed = completed
        self.remaining = remaining
        self.report = report


@dataclass(slots=True)
class PolicyOutcome:
    policy_id: int
    policy_number: str
    status: str
    message: str = ""


@dataclass(slots=True)
class RecalculationReport:
    company_id: int
    requested: int = 0
    outcomes: list[PolicyOutcome] = field(default_factory=list)
    missing_policy_ids: list[int] = field(default_factory=list)
    started_at: datetime = field(default_factory=timezone.now)
    finished_at: datetime | None = None

    @property
    def completed(self) -> int:
        return len(self.outcomes)

    @property
    def counts(self) -> dict[str, int]:
        counts = {outcome: 0 for outcome in OUTCOMES}
        for item in self.outcomes:
            counts[item.status] = counts.get(item.status, 0) + 1
        return counts

    @property
    def failures(self) -> list[PolicyOutcome]:
        return [item for item in self.outcomes if item.status != STATUS_CALCULATED]

    def as_dict(self) -> dict[str, Any]:
        return {
            "company_id": self.company_id,
            "requested": self.requested,
            "completed": self.completed,
            "counts": self.counts,
            "missing_policy_ids": list(self.missing_policy_ids),
            "failures": [
                {
                    "policy_id": item.policy_id,
                    "policy_number": item.policy_number,
                    "status": item.status,
                    "message": item.message,
                }
                for item in self.failures
            ],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


# ---------------------------------------------------------------------------
# ORM -> engine values


def grid_row_from_model(grid: CommissionGrid) -> GridRow:
    return GridRow(
        id=grid.pk,
        provider=grid.provider,
        product_type=grid.product_type,
        plan_name=grid.plan_name,
        valid_from=grid.valid_from,
        valid_to=grid.valid_to,
        commission_rate=grid.commission_rate,
        reward_rate=grid.reward_rate if grid.reward_rate is not None else Decimal("0"),
        bonus_commission_rate=(
            grid.bonus_commission_rate if grid.bonus_commission_rate is not None else Decimal("0")
        ),
        min_premium=grid.min_premium,
        max_premium=grid.max_premium,
        is_active=grid.is_active,
        created_at=grid.created_at,
    )


def policy_facts_from_model(policy: Policy) -> PolicyFacts:
    return PolicyFacts(
        id=policy.pk,
        policy_number=policy.policy_number,
        customer_name=policy.customer_name,
        product_type=policy.product_type,
        provider=policy.provider,
        plan_name=policy.plan_name,
        premium_amount=policy.premium_amount,
        issue_date=policy.issue_date,
        source_type=policy.source_type,
        source_id=policy.source_id,
    )


def _tier_values(source) -> tuple[str | None, Decimal | None]:
    tier = getattr(source, "tier", None)
    if tier is None or not tier.is_active:
        return None, None
    return tier.name, tier.base_percentage


def source_profile_from_model(policy: Policy) -> SourceProfile | None:
    source = policy.source
    if source is None:
        return None

    if policy.source_type == Policy.SourceType.EMPLOYEE:
        return SourceProfile(
            id=source.pk,
            name=source.name,
            base_percentage=source.base_percentage,
            reporting_employee_id=source.reporting_manager_id,
        )

    tier_name, tier_percentage = _tier_values(source)
    own_percentage = (
        source.percentage
        if policy.source_type == Policy.SourceType.MISP
        else source.base_percentage
    )
    return SourceProfile(
        id=source.pk,
        name=source.name,
        base_percentage=own_percentage,
        override_percentage=source.override_percentage,
        tier_name=tier_name,
        tier_percentage=tier_percentage,
        reporting_employee_id=source.reporting_employee_id,
    )


# ---------------------------------------------------------------------------
# Batch


@dataclass(frozen=True, slots=True)
class _Job:
    policy: Policy
    facts: PolicyFacts
    source: SourceProfile | None


def _policy_queryset(company, policy_ids: Iterable[int] | None):
    queryset = Policy.all_objects.filter(company=company).select_related(
        "agent__tier",
        "misp__tier",
        "employee",
    )
    if policy_ids is not None:
        queryset = queryset.filter(pk__in=list(policy_ids))
    return queryset.order_by("id")


def _persist(company, policy: Policy, result: CommissionResult) -> PolicyCommission:
    defaults = {
        "grid_id": result.grid_id,
        "status": result.status,
        "premium": result.premium,
        "base_rate": result.base_rate,
        "reward_rate": result.reward_rate,
        "bonus_rate": result.bonus_rate,
        "total_rate": result.total_rate,
        "insurer_commission": result.insurer_commission,
        "source_type": result.source_type,
        "source_id": result.source_id,
        "source_name": result.source_name or "",
        "tier_name": result.tier_name or "",
        "applied_percentage": result.applied_percentage,
        "agent_commission": result.agent_commission,
        "employee_commission": result.employee_commission,
        "misp_commission": result.misp_commission,
        "reporting_employee_commission": result.reporting_employee_commission,
        "reporting_employee_id": result.reporting_employee_id,
        "broker_share": result.broker_share,
        "conflicting_grid_ids": list(result.conflicting_grid_ids),
        "calculated_at": timezone.now(),
    }
    with transaction.atomic():
        row, _ = PolicyCommission.all_objects.update_or_create(
            company=company,
            policy=policy,
            defaults=defaults,
        )
    return row


def _discard(company, policy: Policy) -> None:
    PolicyCommission.all_objects.filter(company=company, policy=policy).delete()


def _store(report: RecalculationReport, company, policy: Policy, operation) -> bool:
    """Run a write for one policy; store errors become that policy's outcome."""

    try:
        operation()
    except InterfaceError:
        raise
    except DatabaseError as exc:
        if isinstance(exc, OperationalError) and not connection.is_usable():
            raise
        logger.warning(
            "commission.recalc.store_error tenant=%s policy=%s error=%s",
            company.tenant_code,
            policy.policy_number,
            exc,
        )
        report.outcomes.append(
            PolicyOutcome(policy.pk, policy.policy_number, OUTCOME_TRANSIENT_STORE_ERROR, str(exc))
        )
        return False
    return True


def _record(report: RecalculationReport, company, job: _Job, compute) -> None:
    policy = job.policy
    try:
        result = compute()
    except CommissionEngineError as exc:
        logger.warning(
            "commission.recalc.invalid_policy tenant=%s policy=%s error=%s",
            company.tenant_code,
            policy.policy_number,
            exc,
        )
        # a stale cached result must not outlive the policy becoming invalid
        if _store(report, company, policy, lambda: _discard(company, policy)):
            report.outcomes.append(
                PolicyOutcome(policy.pk, policy.policy_number, OUTCOME_INVALID_POLICY, str(exc))
            )
        return

    if _store(report, company, policy, lambda: _persist(company, policy, result)):
        report.outcomes.append(PolicyOutcome(policy.pk, policy.policy_number, result.status))


def _resolve_job(job: _Job, grids: list[GridRow], config) -> CommissionResult:
    return resolve_commission(job.facts, grids, job.source, config)


def _abort(report: RecalculationReport, reason: str, exc: BaseException | None = None):
    remaining = report.requested - report.completed
    report.finished_at = timezone.now()
    logger.error(
        "commission.recalc.aborted tenant=%s reason=%s completed=%s remaining=%s",
        report.company_id,
        reason,
        report.completed,
        remaining,
    )
    return RecalculationAborted(
        f"Recalculation aborted ({reason}): {report.completed} completed, {remaining} remaining.",
        completed=report.completed,
        remaining=remaining,
        report=report,
    )


def recalculate_policies(
    company,
    policy_ids: Iterable[int] | None = None,
    *,
    max_workers: int | None = None,
    timeout: float | None = None,
) -> RecalculationReport:
    """Recompute and cache the commission result of a tenant's policies.

    Grids, tenant settings and sources are loaded once up front; the pure
    engine runs on a bounded thread pool; results are written back from the
    calling thread. A bad policy or a failed write is recorded and the batch
    goes on. Losing the database connection or exceeding `timeout` seconds
    raises `RecalculationAborted`.
    """

    if max_workers is None:
        max_workers = settings.COMMISSION_RECALC_MAX_WORKERS
    if timeout is None:
        timeout = settings.COMMISSION_RECALC_TIMEOUT_SECONDS

    requested_ids = list(dict.fromkeys(policy_ids)) if policy_ids is not None else None
    report = RecalculationReport(
        company_id=company.pk,
        requested=len(requested_ids) if requested_ids is not None else 0,
    )

    try:
        policies = list(_policy_queryset(company, requested_ids))
        grids = [
            grid_row_from_model(grid)
            for grid in CommissionGrid.all_objects.filter(company=company, is_active=True)
        ]
        config = CommissionSettings.for_company(company).to_distribution_config()
    except (InterfaceError, OperationalError) as exc:
        raise _abort(report, "store_unavailable") from exc

    if requested_ids is not None:
        found = {policy.pk for policy in policies}
        report.missing_policy_ids = [pk for pk in requested_ids if pk not in found]
    report.requested = len(policies)

    jobs = [
        _Job(policy=policy, facts=policy_facts_from_model(policy), source=source_profile_from_model(policy))
        for policy in policies
    ]

    deadline = time.monotonic() + timeout
    try:
        if max_workers <= 1:
            for job in jobs:
                if time.monotonic() > deadline:
                    raise _abort(report, "timeout")
                _record(report, company, job, lambda job=job: _resolve_job(job, grids, config))
        else:
            _run_pool(report, company, jobs, grids, config, max_workers, deadline)
    except (InterfaceError, OperationalError) as exc:
        raise _abort(report, "store_unavailable") from exc

    report.finished_at = timezone.now()
    counts = report.counts
    logger.info(
        "commission.recalc.completed tenant=%s total=%s calculated=%s grid_mismatch=%s "
        "config_missing=%s invalid=%s store_errors=%s",
        company.tenant_code,
        report.completed,
        counts[STATUS_CALCULATED],
        counts[STATUS_GRID_MISMATCH],
        counts[STATUS_CONFIG_MISSING],
        counts[OUTCOME_INVALID_POLICY],
        counts[OUTCOME_TRANSIENT_STORE_ERROR],
    )
    return report


def _run_pool(report, company, jobs, grids, config, max_workers, deadline) -> None:
    pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="commission-recalc")
    try:
        futures = {pool.submit(_resolve_job, job, grids, config): job for job in jobs}
        try:
            for future in as_completed(futures, timeout=max(deadline - time.monotonic(), 0)):
                _record(report, company, futures[future], future.result)
        except FuturesTimeoutError as exc:
            raise _abort(report, "timeout") from exc
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
