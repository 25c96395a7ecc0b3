"""Commission resolution engine.

Pure functions over plain values: the grid matcher picks the applicable
commission grid row for a policy, the rate aggregator turns it into the
insurer commission, and the distributor splits that commission among the
source of business, the reporting employee and the broker. Nothing here
touches the ORM; callers convert model rows with the `*_from_*` helpers in
`commission.services.recalculation`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from itertools import combinations
from typing import Any, Iterable, Sequence


logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")

STATUS_PENDING = "pending"
STATUS_CALCULATED = "calculated"
STATUS_GRID_MISMATCH = "grid_mismatch"
STATUS_CONFIG_MISSING = "config_missing"

SOURCE_AGENT = "agent"
SOURCE_EMPLOYEE = "employee"
SOURCE_MISP = "misp"
SOURCE_ORG_DIRECT = "org_direct"

_SHARED_SOURCES = frozenset((SOURCE_AGENT, SOURCE_EMPLOYEE, SOURCE_MISP))


class CommissionEngineError(RuntimeError):
    """Base error for commission engine failures."""


class CommissionRuleError(CommissionEngineError):
    """Raised when a policy or grid row cannot be evaluated."""


class CommissionSplitError(CommissionEngineError):
    """Raised when distribution percentages are invalid."""


@dataclass(frozen=True, slots=True)
class GridRow:
    id: int
    provider: str
    product_type: str
    valid_from: date
    commission_rate: Decimal
    reward_rate: Decimal = _ZERO
    bonus_commission_rate: Decimal = _ZERO
    plan_name: str | None = None
    min_premium: Decimal | None = None
    max_premium: Decimal | None = None
    valid_to: date | None = None
    is_active: bool = True
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class PolicyFacts:
    id: int | None
    policy_number: str
    product_type: str | None
    provider: str | None
    premium_amount: Decimal | None
    issue_date: date | None
    plan_name: str | None = None
    customer_name: str = ""
    source_type: str = SOURCE_ORG_DIRECT
    source_id: int | None = None


@dataclass(frozen=True, slots=True)
class SourceProfile:
    """Commission-relevant view of an agent, MISP or employee."""

    id: int
    name: str
    base_percentage: Decimal | None = None
    override_percentage: Decimal | None = None
    tier_name: str | None = None
    tier_percentage: Decimal | None = None
    reporting_employee_id: int | None = None


@dataclass(frozen=True, slots=True)
class DistributionConfig:
    employee_share_percentage: Decimal | None = None
    reporting_override_percentage: Decimal = _ZERO
    default_reporting_employee_id: int | None = None


@dataclass(frozen=True, slots=True)
class GridMatch:
    grid: GridRow
    conflicting_grid_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class RateAggregate:
    base_rate: Decimal
    reward_rate: Decimal
    bonus_rate: Decimal
    total_rate: Decimal
    insurer_commission: Decimal


@dataclass(frozen=True, slots=True)
class CommissionSplit:
    status: str
    broker_share: Decimal
    agent_commission: Decimal = _ZERO
    employee_commission: Decimal = _ZERO
    misp_commission: Decimal = _ZERO
    reporting_employee_commission: Decimal = _ZERO
    reporting_employee_id: int | None = None
    applied_percentage: Decimal | None = None

    @property
    def total(self) -> Decimal:
        return (
            self.agent_commission
            + self.employee_commission
            + self.misp_commission
            + self.reporting_employee_commission
            + self.broker_share
        )


@dataclass(frozen=True, slots=True)
class CommissionResult:
    policy_id: int | None
    policy_number: str
    customer_name: str
    product_type: str
    provider: str
    premium: Decimal
    issue_date: date | None
    source_type: str
    status: str
    source_id: int | None = None
    source_name: str | None = None
    grid_id: int | None = None
    base_rate: Decimal = _ZERO
    reward_rate: Decimal = _ZERO
    bonus_rate: Decimal = _ZERO
    total_rate: Decimal = _ZERO
    insurer_commission: Decimal = _ZERO
    applied_percentage: Decimal | None = None
    tier_name: str | None = None
    agent_commission: Decimal = _ZERO
    employee_commission: Decimal = _ZERO
    misp_commission: Decimal = _ZERO
    reporting_employee_commission: Decimal = _ZERO
    reporting_employee_id: int | None = None
    broker_share: Decimal = _ZERO
    conflicting_grid_ids: tuple[int, ...] = ()

    @property
    def distributed_total(self) -> Decimal:
        return (
            self.agent_commission
            + self.employee_commission
            + self.misp_commission
            + self.reporting_employee_commission
            + self.broker_share
        )


def _to_decimal(value: Any, *, field: str) -> Decimal:
    try:
        if isinstance(value, Decimal):
            return value
        if value is None or value == "":
            raise CommissionRuleError(f"Missing {field}.")
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise CommissionRuleError(f"Invalid decimal for {field}.") from exc


def _optional_decimal(value: Any, *, field: str) -> Decimal | None:
    if value is None or value == "":
        return None
    return _to_decimal(value, field=field)


def _round_money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _safe_str(value: Any) -> str:
    return str(value or "").strip()


def _normalize(value: Any) -> str:
    return _safe_str(value).casefold()


def _share(amount: Decimal, percentage: Decimal) -> Decimal:
    return _round_money(amount * percentage / _HUNDRED)


def _check_percentage(value: Decimal, *, field: str) -> Decimal:
    if value < 0 or value > _HUNDRED:
        raise CommissionSplitError(f"{field} must be between 0 and 100.")
    return value


# ---------------------------------------------------------------------------
# Grid matcher


def _require_policy_fields(policy: PolicyFacts) -> None:
    missing = [
        name
        for name in ("product_type", "provider", "premium_amount", "issue_date")
        if getattr(policy, name) is None or getattr(policy, name) == ""
    ]
    if missing:
        raise CommissionRuleError(
            f"Policy {policy.policy_number or policy.id} is missing {', '.join(missing)}."
        )


def _within_window(grid: GridRow, on: date) -> bool:
    if on < grid.valid_from:
        return False
    return grid.valid_to is None or on <= grid.valid_to


def _within_band(grid: GridRow, premium: Decimal) -> bool:
    lower = grid.min_premium if grid.min_premium is not None else _ZERO
    if premium < lower:
        return False
    return grid.max_premium is None or premium <= grid.max_premium


def _specificity(grid: GridRow, plan: str) -> int:
    # 2: plan names agree (both empty counts), 1: generic row, 0: other plan.
    grid_plan = _normalize(grid.plan_name)
    if grid_plan == plan:
        return 2
    if not grid_plan or not plan:
        return 1
    return 0


def _candidate_key(grid: GridRow, plan: str) -> tuple:
    created = grid.created_at.timestamp() if grid.created_at is not None else float("-inf")
    return (_specificity(grid, plan), created, grid.id or 0)


def match_grid(policy: PolicyFacts, grids: Iterable[GridRow]) -> GridMatch | None:
    """Pick the grid row governing `policy`.

    Candidates are active rows for the policy's provider and product type
    whose validity window contains the issue date and whose premium band
    contains the premium (all bounds inclusive). A row carrying the policy's
    plan name beats a generic row; ties go to the most recently created row,
    then the highest id. Other candidates at the winning specificity are
    reported as conflicts.
    """

    _require_policy_fields(policy)

    provider = _normalize(policy.provider)
    product_type = _normalize(policy.product_type)
    plan = _normalize(policy.plan_name)
    premium = _to_decimal(policy.premium_amount, field="premium_amount")

    candidates = [
        grid
        for grid in grids
        if grid.is_active
        and _normalize(grid.provider) == provider
        and _normalize(grid.product_type) == product_type
        and _specificity(grid, plan) > 0
        and _within_window(grid, policy.issue_date)
        and _within_band(grid, premium)
    ]
    if not candidates:
        return None

    candidates.sort(key=lambda grid: _candidate_key(grid, plan), reverse=True)
    winner = candidates[0]
    winner_rank = _specificity(winner, plan)
    conflicts = tuple(
        grid.id for grid in candidates[1:] if _specificity(grid, plan) == winner_rank
    )
    if conflicts:
        logger.warning(
            "commission.grid.conflict policy=%s grid=%s conflicting=%s",
            policy.policy_number,
            winner.id,
            list(conflicts),
        )
    return GridMatch(grid=winner, conflicting_grid_ids=conflicts)


def _grid_key(grid: GridRow) -> tuple[str, str, str]:
    return (_normalize(grid.provider), _normalize(grid.product_type), _normalize(grid.plan_name))


def grids_overlap(first: GridRow, second: GridRow) -> bool:
    if _grid_key(first) != _grid_key(second):
        return False

    first_end = first.valid_to or date.max
    second_end = second.valid_to or date.max
    if first.valid_from > second_end or second.valid_from > first_end:
        return False

    first_low = first.min_premium if first.min_premium is not None else _ZERO
    second_low = second.min_premium if second.min_premium is not None else _ZERO
    if first.max_premium is not None and second_low > first.max_premium:
        return False
    if second.max_premium is not None and first_low > second.max_premium:
        return False
    return True


def find_grid_overlaps(grids: Iterable[GridRow]) -> list[tuple[GridRow, GridRow]]:
    """Return every pair of active rows whose window and band overlap."""

    active = sorted((grid for grid in grids if grid.is_active), key=lambda g: g.id or 0)
    return [(a, b) for a, b in combinations(active, 2) if grids_overlap(a, b)]


# ---------------------------------------------------------------------------
# Rate aggregator


def aggregate(match: GridMatch, premium: Any) -> RateAggregate:
    grid = match.grid
    base_rate = _to_decimal(grid.commission_rate, field="commission_rate")
    reward_rate = _optional_decimal(grid.reward_rate, field="reward_rate") or _ZERO
    bonus_rate = _optional_decimal(grid.bonus_commission_rate, field="bonus_commission_rate") or _ZERO
    total_rate = base_rate + reward_rate + bonus_rate

    amount = _to_decimal(premium, field="premium")
    if amount <= 0:
        insurer_commission = _ZERO
    else:
        insurer_commission = _share(amount, total_rate)

    return RateAggregate(
        base_rate=base_rate,
        reward_rate=reward_rate,
        bonus_rate=bonus_rate,
        total_rate=total_rate,
        insurer_commission=insurer_commission,
    )


# ---------------------------------------------------------------------------
# Distributor


def effective_percentage(
    source_type: str,
    source: SourceProfile | None,
    config: DistributionConfig,
) -> Decimal | None:
    """Share of the insurer commission owed to the source of business.

    Agents and MISPs: override, then tier, then their own percentage.
    Employees: their own percentage, then the tenant employee share.
    """

    if source is None:
        return None

    if source_type == SOURCE_EMPLOYEE:
        candidates = (source.base_percentage, config.employee_share_percentage)
    else:
        candidates = (source.override_percentage, source.tier_percentage, source.base_percentage)

    for value in candidates:
        if value is not None:
            return _check_percentage(
                _to_decimal(value, field="percentage"),
                field=f"{source_type} percentage",
            )
    return None


def _reporting_employee_id(
    source_type: str,
    source: SourceProfile,
    config: DistributionConfig,
) -> int | None:
    candidate = source.reporting_employee_id or config.default_reporting_employee_id
    if source_type == SOURCE_EMPLOYEE and candidate == source.id:
        return None
    return candidate


def distribute(
    insurer_commission: Any,
    source_type: str,
    source: SourceProfile | None,
    config: DistributionConfig | None = None,
) -> CommissionSplit:
    """Split the insurer commission.

    The source's share is taken first, the reporting employee override is
    carved out of what is left, and the broker keeps the remainder, so the
    parts always add up to the insurer commission.
    """

    config = config or DistributionConfig()
    total = _round_money(_to_decimal(insurer_commission, field="insurer_commission"))
    source_type = _safe_str(source_type).lower()

    override_pct = _check_percentage(
        _to_decimal(config.reporting_override_percentage or _ZERO, field="reporting_override_percentage"),
        field="reporting_override_percentage",
    )
    if config.employee_share_percentage is not None:
        _check_percentage(
            _to_decimal(config.employee_share_percentage, field="employee_share_percentage"),
            field="employee_share_percentage",
        )

    if source_type not in _SHARED_SOURCES:
        return CommissionSplit(status=STATUS_CALCULATED, broker_share=total)

    percentage = effective_percentage(source_type, source, config)
    if percentage is None:
        return CommissionSplit(status=STATUS_CONFIG_MISSING, broker_share=total)

    source_amount = _share(total, percentage)
    remainder = total - source_amount

    reporting_id = _reporting_employee_id(source_type, source, config)
    reporting_amount = _ZERO
    if reporting_id is not None and override_pct > 0:
        reporting_amount = min(_share(total, override_pct), remainder)
    else:
        reporting_id = None

    return CommissionSplit(
        status=STATUS_CALCULATED,
        broker_share=remainder - reporting_amount,
        agent_commission=source_amount if source_type == SOURCE_AGENT else _ZERO,
        employee_commission=source_amount if source_type == SOURCE_EMPLOYEE else _ZERO,
        misp_commission=source_amount if source_type == SOURCE_MISP else _ZERO,
        reporting_employee_commission=reporting_amount,
        reporting_employee_id=reporting_id,
        applied_percentage=percentage,
    )


# ---------------------------------------------------------------------------
# Orchestration


def resolve_commission(
    policy: PolicyFacts,
    grids: Sequence[GridRow],
    source: SourceProfile | None = None,
    config: DistributionConfig | None = None,
) -> CommissionResult:
    """Compute the full commission result for one policy.

    Raises `CommissionRuleError` when the policy lacks the fields needed to
    match a grid; every data configuration gap is reported as a status.
    """

    _require_policy_fields(policy)
    premium = _to_decimal(policy.premium_amount, field="premium_amount")
    source_type = _safe_str(policy.source_type).lower() or SOURCE_ORG_DIRECT

    base = dict(
        policy_id=policy.id,
        policy_number=policy.policy_number,
        customer_name=policy.customer_name,
        product_type=policy.product_type,
        provider=policy.provider,
        premium=premium,
        issue_date=policy.issue_date,
        source_type=source_type,
        source_id=policy.source_id,
        source_name=source.name if source is not None else None,
        tier_name=source.tier_name if source is not None else None,
    )

    if premium <= 0:
        return CommissionResult(status=STATUS_CALCULATED, **base)

    match = match_grid(policy, grids)
    if match is None:
        return CommissionResult(status=STATUS_GRID_MISMATCH, **base)

    rates = aggregate(match, premium)
    split = distribute(rates.insurer_commission, source_type, source, config)

    return CommissionResult(
        status=split.status,
        grid_id=match.grid.id,
        base_rate=rates.base_rate,
        reward_rate=rates.reward_rate,
        bonus_rate=rates.bonus_rate,
        total_rate=rates.total_rate,
        insurer_commission=rates.insurer_commission,
        applied_percentage=split.applied_percentage,
        agent_commission=split.agent_commission,
        employee_commission=split.employee_commission,
        misp_commission=split.misp_commission,
        reporting_employee_commission=split.reporting_employee_commission,
        reporting_employee_id=split.reporting_employee_id,
        broker_share=split.broker_share,
        conflicting_grid_ids=match.conflicting_grid_ids,
        **base,
    )
