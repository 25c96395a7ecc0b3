from commission.services.commission_engine import (
    CommissionEngineError,
    CommissionResult,
    CommissionRuleError,
    CommissionSplit,
    CommissionSplitError,
    DistributionConfig,
    GridMatch,
    GridRow,
    PolicyFacts,
    RateAggregate,
    SourceProfile,
    aggregate,
    distribute,
    find_grid_overlaps,
    match_grid,
    resolve_commission,
)

__all__ = [
    "CommissionEngineError",
    "CommissionRuleError",
    "CommissionSplitError",
    "CommissionResult",
    "CommissionSplit",
    "DistributionConfig",
    "GridMatch",
    "GridRow",
    "PolicyFacts",
    "RateAggregate",
    "SourceProfile",
    "match_grid",
    "find_grid_overlaps",
    "aggregate",
    "distribute",
    "resolve_commission",
]
