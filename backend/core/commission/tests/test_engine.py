from datetime import date, datetime, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from commission.services.commission_engine import (
    STATUS_CALCULATED,
    STATUS_CONFIG_MISSING,
    STATUS_GRID_MISMATCH,
    CommissionRuleError,
    CommissionSplitError,
    DistributionConfig,
    GridRow,
    PolicyFacts,
    SourceProfile,
    aggregate,
    distribute,
    find_grid_overlaps,
    match_grid,
    resolve_commission,
)


def _grid(grid_id, **overrides):
    values = {
        "id": grid_id,
        "provider": "HDFC Ergo",
        "product_type": "Motor",
        "valid_from": date(2024, 1, 1),
        "commission_rate": Decimal("10"),
        "reward_rate": Decimal("2"),
        "bonus_commission_rate": Decimal("1"),
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return GridRow(**values)


def _policy(**overrides):
    values = {
        "id": 1,
        "policy_number": "POL-001",
        "customer_name": "Ravi Kumar",
        "product_type": "Motor",
        "provider": "HDFC Ergo",
        "premium_amount": Decimal("100000"),
        "issue_date": date(2024, 6, 15),
        "source_type": "agent",
        "source_id": 7,
    }
    values.update(overrides)
    return PolicyFacts(**values)


AGENT_60 = SourceProfile(id=7, name="Asha Agent", override_percentage=Decimal("60"))


class GridMatcherTests(SimpleTestCase):
    def test_matches_provider_and_product_case_insensitively(self):
        match = match_grid(_policy(provider="  hdfc ergo ", product_type="MOTOR"), [_grid(1)])
        self.assertEqual(match.grid.id, 1)
        self.assertEqual(match.conflicting_grid_ids, ())

    def test_no_candidate_returns_none(self):
        self.assertIsNone(match_grid(_policy(provider="ICICI Lombard"), [_grid(1)]))

    def test_inactive_grid_is_ignored(self):
        self.assertIsNone(match_grid(_policy(), [_grid(1, is_active=False)]))

    def test_bounds_are_inclusive(self):
        grid = _grid(
            1,
            valid_to=date(2024, 6, 15),
            min_premium=Decimal("50000"),
            max_premium=Decimal("100000"),
        )
        self.assertIsNotNone(match_grid(_policy(), [grid]))
        self.assertIsNone(match_grid(_policy(issue_date=date(2024, 6, 16)), [grid]))
        self.assertIsNone(match_grid(_policy(premium_amount=Decimal("100000.01")), [grid]))
        self.assertIsNone(match_grid(_policy(issue_date=date(2023, 12, 31)), [grid]))

    def test_plan_specific_grid_beats_generic_grid(self):
        generic = _grid(1, created_at=datetime(2024, 5, 1, tzinfo=timezone.utc))
        specific = _grid(2, plan_name="Comprehensive", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))

        match = match_grid(_policy(plan_name="comprehensive"), [generic, specific])

        self.assertEqual(match.grid.id, 2)
        self.assertEqual(match.conflicting_grid_ids, ())

    def test_policy_plan_never_matches_other_plan_grid(self):
        other = _grid(1, plan_name="Third Party")
        self.assertIsNone(match_grid(_policy(plan_name="Comprehensive"), [other]))

    def test_planless_policy_prefers_generic_grid(self):
        generic = _grid(1)
        specific = _grid(2, plan_name="Comprehensive", created_at=datetime(2024, 3, 1, tzinfo=timezone.utc))

        match = match_grid(_policy(), [specific, generic])

        self.assertEqual(match.grid.id, 1)

    def test_most_recent_grid_wins_and_conflicts_are_reported(self):
        older = _grid(5, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        newer = _grid(3, created_at=datetime(2024, 2, 1, tzinfo=timezone.utc))

        with self.assertLogs("commission.services.commission_engine", level="WARNING"):
            match = match_grid(_policy(), [older, newer])

        self.assertEqual(match.grid.id, 3)
        self.assertEqual(match.conflicting_grid_ids, (5,))

    def test_same_created_at_falls_back_to_highest_id(self):
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        with self.assertLogs("commission.services.commission_engine", level="WARNING"):
            match = match_grid(_policy(), [_grid(4, created_at=stamp), _grid(9, created_at=stamp)])
        self.assertEqual(match.grid.id, 9)

    def test_missing_required_fields_raise_rule_error(self):
        for field in ("product_type", "provider", "premium_amount", "issue_date"):
            with self.subTest(field=field):
                with self.assertRaises(CommissionRuleError):
                    match_grid(_policy(**{field: None}), [_grid(1)])

    def test_find_grid_overlaps(self):
        first = _grid(1, max_premium=Decimal("50000"))
        overlapping = _grid(2, min_premium=Decimal("40000"))
        disjoint = _grid(3, min_premium=Decimal("1"), max_premium=Decimal("100"), plan_name="Other")
        later = _grid(4, valid_from=date(2030, 1, 1), min_premium=Decimal("60000"))

        pairs = find_grid_overlaps([first, overlapping, disjoint, later])

        self.assertEqual([(a.id, b.id) for a, b in pairs], [(1, 2), (2, 4)])


class RateAggregatorTests(SimpleTestCase):
    def test_sums_rates_once(self):
        rates = aggregate(match_grid(_policy(), [_grid(1)]), Decimal("100000"))
        self.assertEqual(rates.total_rate, Decimal("13"))
        self.assertEqual(rates.insurer_commission, Decimal("13000.00"))

    def test_rounds_half_up(self):
        grid = _grid(1, commission_rate=Decimal("2.5"), reward_rate=Decimal("0"), bonus_commission_rate=Decimal("0"))
        rates = aggregate(match_grid(_policy(), [grid]), Decimal("0.50"))
        # 0.50 * 2.5% = 0.0125
        self.assertEqual(rates.insurer_commission, Decimal("0.01"))
        rates = aggregate(match_grid(_policy(), [grid]), Decimal("1.00"))
        self.assertEqual(rates.insurer_commission, Decimal("0.03"))

    def test_non_positive_premium_gives_zero(self):
        rates = aggregate(match_grid(_policy(), [_grid(1)]), Decimal("0"))
        self.assertEqual(rates.insurer_commission, Decimal("0.00"))


class DistributorTests(SimpleTestCase):
    def test_agent_share_and_broker_remainder(self):
        split = distribute(Decimal("13000.00"), "agent", AGENT_60)
        self.assertEqual(split.status, STATUS_CALCULATED)
        self.assertEqual(split.agent_commission, Decimal("7800.00"))
        self.assertEqual(split.broker_share, Decimal("5200.00"))
        self.assertEqual(split.applied_percentage, Decimal("60"))

    def test_agent_percentage_precedence(self):
        source = SourceProfile(
            id=1,
            name="A",
            base_percentage=Decimal("40"),
            tier_percentage=Decimal("50"),
        )
        self.assertEqual(distribute(Decimal("100"), "agent", source).agent_commission, Decimal("50.00"))

        source = SourceProfile(id=1, name="A", base_percentage=Decimal("40"))
        self.assertEqual(distribute(Decimal("100"), "agent", source).agent_commission, Decimal("40.00"))

    def test_misp_share(self):
        source = SourceProfile(id=3, name="Dealer", base_percentage=Decimal("25"))
        split = distribute(Decimal("1000.00"), "misp", source)
        self.assertEqual(split.misp_commission, Decimal("250.00"))
        self.assertEqual(split.broker_share, Decimal("750.00"))

    def test_employee_falls_back_to_tenant_share(self):
        source = SourceProfile(id=5, name="Emp")
        config = DistributionConfig(employee_share_percentage=Decimal("30"))
        split = distribute(Decimal("1000.00"), "employee", source, config)
        self.assertEqual(split.employee_commission, Decimal("300.00"))
        self.assertEqual(split.broker_share, Decimal("700.00"))

    def test_reporting_override_is_carved_from_broker_share(self):
        source = SourceProfile(id=5, name="Emp", base_percentage=Decimal("40"), reporting_employee_id=9)
        config = DistributionConfig(reporting_override_percentage=Decimal("5"))

        split = distribute(Decimal("1000.00"), "employee", source, config)

        self.assertEqual(split.employee_commission, Decimal("400.00"))
        self.assertEqual(split.reporting_employee_commission, Decimal("50.00"))
        self.assertEqual(split.reporting_employee_id, 9)
        self.assertEqual(split.broker_share, Decimal("550.00"))
        self.assertEqual(split.total, Decimal("1000.00"))

    def test_reporting_override_capped_at_broker_remainder(self):
        source = SourceProfile(id=7, name="A", override_percentage=Decimal("98"), reporting_employee_id=9)
        config = DistributionConfig(reporting_override_percentage=Decimal("5"))

        split = distribute(Decimal("100.00"), "agent", source, config)

        self.assertEqual(split.agent_commission, Decimal("98.00"))
        self.assertEqual(split.reporting_employee_commission, Decimal("2.00"))
        self.assertEqual(split.broker_share, Decimal("0.00"))

    def test_default_reporting_employee_used_when_source_has_none(self):
        config = DistributionConfig(
            reporting_override_percentage=Decimal("10"),
            default_reporting_employee_id=11,
        )
        split = distribute(Decimal("1000.00"), "agent", AGENT_60, config)
        self.assertEqual(split.reporting_employee_id, 11)
        self.assertEqual(split.reporting_employee_commission, Decimal("100.00"))
        self.assertEqual(split.broker_share, Decimal("300.00"))

    def test_employee_is_never_own_reporting_employee(self):
        source = SourceProfile(id=11, name="Boss", base_percentage=Decimal("20"))
        config = DistributionConfig(
            reporting_override_percentage=Decimal("10"),
            default_reporting_employee_id=11,
        )
        split = distribute(Decimal("1000.00"), "employee", source, config)
        self.assertIsNone(split.reporting_employee_id)
        self.assertEqual(split.reporting_employee_commission, Decimal("0.00"))
        self.assertEqual(split.broker_share, Decimal("800.00"))

    def test_org_direct_and_unknown_source_types_keep_everything_for_broker(self):
        for source_type in ("org_direct", "", "walk_in"):
            with self.subTest(source_type=source_type):
                split = distribute(Decimal("13000.00"), source_type, None)
                self.assertEqual(split.status, STATUS_CALCULATED)
                self.assertEqual(split.broker_share, Decimal("13000.00"))

    def test_missing_percentage_is_config_missing(self):
        split = distribute(Decimal("500.00"), "agent", SourceProfile(id=1, name="No pct"))
        self.assertEqual(split.status, STATUS_CONFIG_MISSING)
        self.assertEqual(split.agent_commission, Decimal("0.00"))
        self.assertEqual(split.broker_share, Decimal("500.00"))

    def test_missing_source_is_config_missing(self):
        split = distribute(Decimal("500.00"), "misp", None)
        self.assertEqual(split.status, STATUS_CONFIG_MISSING)
        self.assertEqual(split.broker_share, Decimal("500.00"))

    def test_out_of_range_percentages_raise(self):
        with self.assertRaises(CommissionSplitError):
            distribute(Decimal("100"), "agent", SourceProfile(id=1, name="A", override_percentage=Decimal("101")))
        with self.assertRaises(CommissionSplitError):
            distribute(
                Decimal("100"),
                "agent",
                AGENT_60,
                DistributionConfig(reporting_override_percentage=Decimal("-1")),
            )

    def test_splits_always_sum_to_insurer_commission(self):
        config = DistributionConfig(reporting_override_percentage=Decimal("3.33"), default_reporting_employee_id=2)
        for amount in ("0.01", "0.07", "333.33", "1234.57", "99999.99"):
            for pct in ("0", "33.33", "66.67", "100"):
                with self.subTest(amount=amount, pct=pct):
                    source = SourceProfile(id=1, name="A", override_percentage=Decimal(pct))
                    split = distribute(Decimal(amount), "agent", source, config)
                    self.assertEqual(split.total, Decimal(amount))
                    self.assertGreaterEqual(split.broker_share, Decimal("0"))


class ResolveCommissionTests(SimpleTestCase):
    def test_reference_example(self):
        result = resolve_commission(_policy(), [_grid(1)], AGENT_60, DistributionConfig())

        self.assertEqual(result.status, STATUS_CALCULATED)
        self.assertEqual(result.grid_id, 1)
        self.assertEqual(result.total_rate, Decimal("13"))
        self.assertEqual(result.insurer_commission, Decimal("13000.00"))
        self.assertEqual(result.agent_commission, Decimal("7800.00"))
        self.assertEqual(result.broker_share, Decimal("5200.00"))
        self.assertEqual(result.source_name, "Asha Agent")

    def test_org_direct_policy(self):
        result = resolve_commission(_policy(source_type="org_direct", source_id=None), [_grid(1)])
        self.assertEqual(result.status, STATUS_CALCULATED)
        self.assertEqual(result.broker_share, result.insurer_commission)
        self.assertEqual(result.broker_share, Decimal("13000.00"))

    def test_zero_premium_is_calculated_with_zero_amounts_even_without_grid(self):
        for premium in (Decimal("0"), Decimal("-10")):
            with self.subTest(premium=premium):
                result = resolve_commission(_policy(premium_amount=premium), [], AGENT_60)
                self.assertEqual(result.status, STATUS_CALCULATED)
                self.assertEqual(result.insurer_commission, Decimal("0.00"))
                self.assertEqual(result.distributed_total, Decimal("0.00"))

    def test_no_grid_is_grid_mismatch_with_zero_amounts(self):
        result = resolve_commission(_policy(provider="Unknown"), [_grid(1)], AGENT_60)
        self.assertEqual(result.status, STATUS_GRID_MISMATCH)
        self.assertIsNone(result.grid_id)
        self.assertEqual(result.insurer_commission, Decimal("0.00"))
        self.assertEqual(result.agent_commission, Decimal("0.00"))
        self.assertEqual(result.broker_share, Decimal("0.00"))

    def test_config_missing_keeps_insurer_commission(self):
        result = resolve_commission(_policy(), [_grid(1)], None)
        self.assertEqual(result.status, STATUS_CONFIG_MISSING)
        self.assertEqual(result.insurer_commission, Decimal("13000.00"))
        self.assertEqual(result.broker_share, Decimal("13000.00"))

    def test_recomputation_is_idempotent(self):
        grids = [_grid(1), _grid(2, plan_name="Gold")]
        first = resolve_commission(_policy(plan_name="Gold"), grids, AGENT_60)
        second = resolve_commission(_policy(plan_name="Gold"), list(reversed(grids)), AGENT_60)
        self.assertEqual(first, second)
