# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for cached recalculation, sensitivity tooling and Monte Carlo."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from pydantic import ValidationError

from seniorval.analysis import (
    CancellationToken,
    DistributionSpec,
    InMemoryOverrideStore,
    ParameterOverrideInput,
    ParameterPath,
    ParameterResolver,
    RecalculationCache,
    RecalculationEngine,
    create_recalculation_engine,
)
from seniorval.core.exceptions import CalculationCancelledError
from seniorval.core.primitives import (
    AssetTypeEnum,
    DistributionKindEnum,
    EnabledMethods,
    ParameterSourceEnum,
    RecalculationSettings,
)
from seniorval.valuation import ValuationSettings, create_valuation_engine

PPB = "price_per_bed.base_price_per_bed"


def price_per_bed_only() -> ValuationSettings:
    """Settings under which value is proportional to the base price per bed."""
    return ValuationSettings(
        enabled=EnabledMethods(
            cap_rate=False,
            dcf=False,
            noi_multiple=False,
            comparable_sales=False,
            replacement_cost=False,
        )
    )


def make_engine(global_settings=None, **kwargs) -> RecalculationEngine:
    resolver = ParameterResolver(InMemoryOverrideStore(), global_settings=global_settings)
    return RecalculationEngine(resolver, **kwargs)


@pytest.fixture
def engine() -> RecalculationEngine:
    return make_engine()


@pytest.fixture
def ppb_engine() -> RecalculationEngine:
    return make_engine(price_per_bed_only())


class TestRecalculate:
    def test_second_call_served_from_cache(self, engine, valuation_input):
        first = engine.recalculate("deal-1", valuation_input)
        second = engine.recalculate("deal-1", valuation_input)

        assert not first.from_cache
        assert second.from_cache
        assert second.value == first.value

    def test_override_order_does_not_change_cache_key(self, engine, valuation_input):
        a = {"parameter": "dcf.discount_rate", "value": 0.1}
        b = {"parameter": "weights.dcf", "value": 0.3}
        engine.recalculate("deal-1", valuation_input, [a, b])
        assert engine.recalculate("deal-1", valuation_input, [b, a]).from_cache

    def test_user_override_changes_value(self, ppb_engine, valuation_input):
        baseline = ppb_engine.recalculate("deal-1", valuation_input)
        raised = ppb_engine.recalculate(
            "deal-1", valuation_input, [ParameterOverrideInput(parameter=PPB, value=104_500)]
        )
        assert raised.value == pytest.approx(baseline.value * 1.1)
        assert raised.resolved_parameters.source_of(PPB) == ParameterSourceEnum.USER_INPUT

    def test_save_overrides_invalidates_cache(self, ppb_engine, valuation_input):
        baseline = ppb_engine.recalculate("deal-1", valuation_input)
        saved = ppb_engine.save_overrides(
            "deal-1", [{"parameter": PPB, "value": 104_500, "reason": "Broker guidance"}], user_id="analyst"
        )
        after = ppb_engine.recalculate("deal-1", valuation_input)

        assert len(saved) == 1
        assert not after.from_cache
        assert after.value == pytest.approx(baseline.value * 1.1)
        assert after.resolved_parameters.source_of(PPB) == ParameterSourceEnum.DEAL_OVERRIDE

    def test_reset_overrides(self, ppb_engine, valuation_input):
        baseline = ppb_engine.recalculate("deal-1", valuation_input)
        ppb_engine.save_overrides(
            "deal-1",
            [{"parameter": PPB, "value": 104_500}, {"parameter": "dcf.hold_period", "value": 5}],
        )
        assert ppb_engine.reset_overrides("deal-1") == 2
        assert ppb_engine.resolver.active_parameters("deal-1") == []
        assert ppb_engine.recalculate("deal-1", valuation_input).value == pytest.approx(baseline.value)

    def test_applying_preset_invalidates_cache(self, ppb_engine, valuation_input):
        baseline = ppb_engine.recalculate("deal-1", valuation_input)
        preset = ParameterPath.PRICE_PER_BED_BASE.set(price_per_bed_only(), AssetTypeEnum.SNF, 190_000)
        preset_id = ppb_engine.resolver.create_preset("Premium", preset)
        ppb_engine.resolver.apply_preset("deal-1", preset_id)
        after = ppb_engine.recalculate("deal-1", valuation_input)

        assert not after.from_cache
        assert after.value == pytest.approx(baseline.value * 2)
        assert after.resolved_parameters.preset_name == "Premium"

    def test_direct_resolver_writes_invalidate_cache(self, ppb_engine, valuation_input):
        baseline = ppb_engine.recalculate("deal-1", valuation_input)
        ppb_engine.recalculate("deal-2", valuation_input)

        ppb_engine.resolver.save_override("deal-1", PPB, 104_500)
        raised = ppb_engine.recalculate("deal-1", valuation_input)
        assert not raised.from_cache
        assert raised.value == pytest.approx(baseline.value * 1.1)
        assert ppb_engine.recalculate("deal-2", valuation_input).from_cache

        assert ppb_engine.resolver.remove_override("deal-1", PPB)
        restored = ppb_engine.recalculate("deal-1", valuation_input)
        assert not restored.from_cache
        assert restored.value == pytest.approx(baseline.value)

    def test_cache_disabled(self, valuation_input):
        engine = make_engine(settings=RecalculationSettings(cache_enabled=False))
        engine.recalculate("deal-1", valuation_input)
        assert not engine.recalculate("deal-1", valuation_input).from_cache
        assert len(engine.cache) == 0

    def test_engine_factory_receives_resolved_settings(self, valuation_input):
        seen = []

        def factory(settings):
            seen.append(settings)
            return create_valuation_engine(settings)

        engine = RecalculationEngine(
            ParameterResolver(InMemoryOverrideStore()), engine_factory=factory
        )
        engine.recalculate("deal-1", valuation_input, [{"parameter": "dcf.hold_period", "value": 7}])
        assert seen[0].dcf.hold_period == 7


class TestRecalculationCache:
    def test_ttl_expiry(self, engine, valuation_input):
        now = [0.0]
        cache = RecalculationCache(ttl_seconds=30, clock=lambda: now[0])
        result = engine.recalculate("deal-1", valuation_input)

        cache.set("deal-1", [], result)
        now[0] = 29.0
        assert cache.get("deal-1", []).from_cache
        now[0] = 31.0
        assert cache.get("deal-1", []) is None
        assert len(cache) == 0

    def test_invalidate_only_that_deal(self, engine, valuation_input):
        cache = RecalculationCache()
        result = engine.recalculate("deal-1", valuation_input)
        cache.set("deal-1", [], result)
        cache.set("deal-10", [], result)

        assert cache.invalidate("deal-1") == 1
        assert cache.get("deal-10", []) is not None

    def test_key_is_order_independent(self):
        a = ParameterOverrideInput(parameter="dcf.discount_rate", value=0.1)
        b = ParameterOverrideInput(parameter="weights.dcf", value=0.3)
        assert RecalculationCache.key("d", [a, b]) == RecalculationCache.key("d", [b, a])
        assert RecalculationCache.key("d", [a]) != RecalculationCache.key("e", [a])


class TestSensitivity:
    def test_linear_parameter_has_unit_elasticity(self, ppb_engine, valuation_input):
        analysis = ppb_engine.analyze_sensitivity("deal-1", valuation_input, PPB, 80_000, 110_000, steps=4)

        assert analysis.baseline == 95_000
        assert [p.value for p in analysis.points] == pytest.approx([80_000, 87_500, 95_000, 102_500, 110_000])
        assert analysis.points[2].change_percent == pytest.approx(0)
        assert analysis.points[4].change_percent == pytest.approx(15 / 95 * 100)
        assert analysis.elasticity == pytest.approx(1.0)
        assert list(analysis.to_dataframe().columns) == ["value", "valuation_value", "change_percent"]

    def test_unknown_parameter_rejected(self, engine, valuation_input):
        with pytest.raises(ValueError, match="Unknown parameter path"):
            engine.analyze_sensitivity("deal-1", valuation_input, "dcf.bogus", 0, 1)

    def test_cancelled_before_start(self, engine, valuation_input):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CalculationCancelledError) as exc:
            engine.analyze_sensitivity(
                "deal-1", valuation_input, "dcf.discount_rate", 0.07, 0.11, steps=4, token=token
            )
        assert exc.value.completed == 0
        assert exc.value.requested == 5

    def test_tornado_sorted_by_swing(self, ppb_engine, valuation_input):
        bars = ppb_engine.tornado_analysis(
            "deal-1",
            valuation_input,
            [
                {"parameter": "dcf.discount_rate", "low": 0.07, "high": 0.11},
                {"parameter": PPB, "low": 80_000, "high": 110_000},
            ],
        )
        assert [bar.parameter for bar in bars] == [PPB, "dcf.discount_rate"]
        assert bars[1].range == pytest.approx(0)
        assert bars[0].high_value / bars[0].low_value == pytest.approx(110 / 80)

        frame = RecalculationEngine.tornado_dataframe(bars)
        assert frame["range"].iloc[0] == pytest.approx(bars[0].range)

    def test_compare_scenarios(self, ppb_engine, valuation_input):
        comparison = ppb_engine.compare_scenarios(
            "deal-1",
            valuation_input,
            [
                {"name": "bull", "parameters": [{"parameter": PPB, "value": 104_500}]},
                {"name": "bear", "parameters": [{"parameter": PPB, "value": 85_500}]},
            ],
        )
        assert [s.name for s in comparison.scenarios] == ["bull", "bear"]
        assert comparison.scenarios[0].percent_diff == pytest.approx(10)
        assert comparison.scenarios[1].percent_diff == pytest.approx(-10)

        frame = comparison.to_dataframe()
        assert list(frame.index) == ["baseline", "bull", "bear"]
        assert frame.loc["baseline", "percent_diff"] == 0


class TestMonteCarlo:
    DISTRIBUTIONS = [{"parameter": PPB, "distribution": "uniform", "min": 80_000, "max": 110_000}]

    def test_values_stay_within_sampled_range(self, ppb_engine, valuation_input):
        baseline = ppb_engine.recalculate("deal-1", valuation_input).value
        result = ppb_engine.run_monte_carlo(
            "deal-1", valuation_input, self.DISTRIBUTIONS, iterations=200, seed=7
        )

        assert result.iterations == 200
        assert len(result.values) == 200
        for value in result.values:
            assert 80 / 95 - 1e-9 <= value / baseline <= 110 / 95 + 1e-9
        assert result.min <= result.percentiles["p5"] <= result.median <= result.percentiles["p95"] <= result.max
        assert sum(bucket.count for bucket in result.distribution) == 200
        assert len(result.to_dataframe()) == 20

    def test_uniform_mean_matches_linear_expectation(self, ppb_engine, valuation_input):
        """Value is linear in price per bed, so the mean sits at the range midpoint."""
        baseline = ppb_engine.recalculate("deal-1", valuation_input).value
        result = ppb_engine.run_monte_carlo(
            "deal-1", valuation_input, self.DISTRIBUTIONS, iterations=1000, seed=42
        )
        expected = baseline / 95_000 * (80_000 + 110_000) / 2

        assert result.iterations == 1000
        assert abs(result.mean / expected - 1) < 0.03
        assert result.min < result.percentiles["p50"] < result.max

    def test_seed_reproduces(self, ppb_engine, valuation_input):
        first = ppb_engine.run_monte_carlo("deal-1", valuation_input, self.DISTRIBUTIONS, iterations=20, seed=3)
        second = ppb_engine.run_monte_carlo("deal-1", valuation_input, self.DISTRIBUTIONS, iterations=20, seed=3)
        assert first.values == second.values

    def test_executor_matches_sequential(self, valuation_input):
        sequential = make_engine(price_per_bed_only()).run_monte_carlo(
            "deal-1", valuation_input, self.DISTRIBUTIONS, iterations=30, seed=11
        )
        with ThreadPoolExecutor(max_workers=4) as executor:
            parallel = create_recalculation_engine(
                ParameterResolver(InMemoryOverrideStore(), global_settings=price_per_bed_only()),
                executor=executor,
            ).run_monte_carlo("deal-1", valuation_input, self.DISTRIBUTIONS, iterations=30, seed=11)
        assert parallel.values == pytest.approx(sequential.values)

    def test_draws_bypass_cache(self, ppb_engine, valuation_input):
        ppb_engine.run_monte_carlo("deal-1", valuation_input, self.DISTRIBUTIONS, iterations=10, seed=1)
        assert len(ppb_engine.cache) == 0

    def test_insufficient_iterations(self, engine, valuation_input):
        result = engine.run_monte_carlo("deal-1", valuation_input, self.DISTRIBUTIONS, iterations=1)
        assert result.message == "Insufficient iterations (1/2)"
        assert result.values == []

    def test_cancelled(self, ppb_engine, valuation_input):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CalculationCancelledError):
            ppb_engine.run_monte_carlo(
                "deal-1", valuation_input, self.DISTRIBUTIONS, iterations=10, seed=1, token=token
            )

    def test_summarize(self):
        result = RecalculationEngine.summarize([1.0, 2.0, 3.0, 4.0], buckets=2)
        assert result.mean == pytest.approx(2.5)
        assert result.median == 3.0
        assert result.percentiles["p50"] == 3.0
        assert [bucket.count for bucket in result.distribution] == [2, 2]
        assert result.distribution[0].bucket == pytest.approx(1.75)

    def test_summarize_constant_values(self):
        result = RecalculationEngine.summarize([5.0] * 10, buckets=4)
        assert result.std_dev == 0
        assert result.distribution[0].count == 10

    def test_summarize_empty(self):
        assert RecalculationEngine.summarize([]).message == "No values to summarize"


class TestDistributionSpec:
    def test_uniform_bounds(self):
        spec = DistributionSpec(parameter=PPB, min=10, max=20)
        rng = np.random.default_rng(0)
        samples = [spec.sample(rng) for _ in range(500)]
        assert all(10 <= s <= 20 for s in samples)

    def test_normal_mean(self):
        spec = DistributionSpec(parameter=PPB, distribution=DistributionKindEnum.NORMAL, mean=5, std_dev=1)
        rng = np.random.default_rng(0)
        samples = [spec.sample(rng) for _ in range(5_000)]
        assert np.mean(samples) == pytest.approx(5, abs=0.1)

    def test_triangular_within_bounds(self):
        spec = DistributionSpec(
            parameter=PPB, distribution=DistributionKindEnum.TRIANGULAR, min=0, max=10, mode=2
        )
        rng = np.random.default_rng(0)
        samples = [spec.sample(rng) for _ in range(1_000)]
        assert all(0 <= s <= 10 for s in samples)
        assert np.median(samples) < 5

    def test_degenerate_triangular(self):
        spec = DistributionSpec(
            parameter=PPB, distribution=DistributionKindEnum.TRIANGULAR, min=3, max=3
        )
        assert spec.sample(np.random.default_rng(0)) == 3

    def test_invalid_bounds(self):
        with pytest.raises(ValidationError, match="must be >= min"):
            DistributionSpec(parameter=PPB, min=5, max=1)
        with pytest.raises(ValidationError, match="Triangular mode"):
            DistributionSpec(
                parameter=PPB, distribution=DistributionKindEnum.TRIANGULAR, min=0, max=1, mode=2
            )
