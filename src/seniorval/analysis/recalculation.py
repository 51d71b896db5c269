# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Recalculation Engine

Re-runs the valuation engine under resolved parameters for interactive use:

- `recalculate`: resolve overrides, build an engine from the resolved
  settings, valuate, cache the result per (deal, sorted overrides)
- `analyze_sensitivity`: sweep one parameter and report elasticity
- `tornado_analysis`: rank parameters by the value swing between their
  low and high inputs
- `compare_scenarios`: named override sets against a shared baseline
- `run_monte_carlo`: sample parameters from uniform / normal / triangular
  distributions and summarize the resulting value distribution

Sweeps, tornado bars and Monte Carlo draws are independent evaluations. They
run on an optional `concurrent.futures.Executor` and stop at the next
evaluation boundary once a `CancellationToken` is cancelled.
"""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from concurrent.futures import Executor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import Field, model_validator

from ..core.exceptions import CalculationCancelledError
from ..core.primitives import DistributionKindEnum, Model, RecalculationSettings
from ..valuation import (
    ValuationEngine,
    ValuationEngineOutput,
    ValuationInput,
    ValuationSettings,
    create_valuation_engine,
)
from .parameters import ParameterOverrideInput, ParameterPath
from .resolver import OverrideLike, ParameterResolver, ResolvedParameters
from .store import StoredOverride

logger = logging.getLogger(__name__)

PERCENTILES = (5, 10, 25, 50, 75, 90, 95)

EngineFactory = Callable[[ValuationSettings], ValuationEngine]


# === CANCELLATION ===


class CancellationToken:
    """
    Cooperative cancellation flag shared with a long-running analysis.

    Example:
        ```python
        token = CancellationToken()
        threading.Timer(2.0, token.cancel).start()
        engine.run_monte_carlo("deal-1", input, distributions, token=token)
        ```
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, completed: int, requested: int) -> None:
        if self.cancelled:
            raise CalculationCancelledError(completed, requested)


# === RESULT MODELS ===


class RecalculationResult(Model):
    valuation: ValuationEngineOutput
    resolved_parameters: ResolvedParameters
    calculated_at: datetime
    calculation_time_ms: float
    from_cache: bool = False

    @property
    def value(self) -> float:
        return self.valuation.result.reconciled_value


class SensitivityPoint(Model):
    parameter: str
    value: float
    valuation_value: float
    change_percent: float


class SensitivityAnalysis(Model):
    """One-parameter sweep; elasticity is % value change per % parameter change."""

    parameter: str
    baseline: float
    baseline_valuation: float
    points: List[SensitivityPoint] = Field(default_factory=list)
    elasticity: float = 0.0

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [p.model_dump(exclude={"parameter"}) for p in self.points],
            columns=["value", "valuation_value", "change_percent"],
        )


class TornadoRange(Model):
    parameter: str
    low: float
    high: float


class TornadoBar(Model):
    parameter: str
    low_input: float
    high_input: float
    low_value: float
    high_value: float

    @property
    def range(self) -> float:
        return abs(self.high_value - self.low_value)


class Scenario(Model):
    name: str
    parameters: List[ParameterOverrideInput] = Field(default_factory=list)


class ScenarioResult(Model):
    name: str
    parameters: List[ParameterOverrideInput]
    valuation: ValuationEngineOutput
    absolute_diff: float
    percent_diff: float


class ScenarioComparison(Model):
    baseline: ValuationEngineOutput
    scenarios: List[ScenarioResult] = Field(default_factory=list)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per scenario, baseline first."""
        rows = [
            {
                "scenario": "baseline",
                "value": self.baseline.result.reconciled_value,
                "absolute_diff": 0.0,
                "percent_diff": 0.0,
            }
        ]
        rows.extend(
            {
                "scenario": s.name,
                "value": s.valuation.result.reconciled_value,
                "absolute_diff": s.absolute_diff,
                "percent_diff": s.percent_diff,
            }
            for s in self.scenarios
        )
        return pd.DataFrame(rows).set_index("scenario")


class DistributionSpec(Model):
    """
    How to sample one parameter in a Monte Carlo run.

    Uniform and triangular use `min` / `max` (defaults 0 and 1); triangular
    also uses `mode` (default midpoint). Normal uses `mean` / `std_dev`
    (defaults 0 and 1).
    """

    parameter: str
    distribution: DistributionKindEnum = DistributionKindEnum.UNIFORM
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    std_dev: Optional[float] = Field(default=None, ge=0)
    mode: Optional[float] = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "DistributionSpec":
        low, high = self.bounds
        if high < low:
            raise ValueError(f"max ({high}) must be >= min ({low})")
        if self.distribution == DistributionKindEnum.TRIANGULAR:
            mode = self.mode if self.mode is not None else (low + high) / 2
            if not low <= mode <= high:
                raise ValueError(f"Triangular mode {mode} must lie within [{low}, {high}]")
        return self

    @property
    def bounds(self) -> Tuple[float, float]:
        low = self.min if self.min is not None else 0.0
        high = self.max if self.max is not None else 1.0
        return low, high

    def sample(self, rng: np.random.Generator) -> float:
        low, high = self.bounds
        if self.distribution == DistributionKindEnum.NORMAL:
            mean = self.mean if self.mean is not None else 0.0
            std_dev = self.std_dev if self.std_dev is not None else 1.0
            # Box-Muller; 1 - u keeps the log argument in (0, 1]
            u1 = 1.0 - rng.random()
            u2 = rng.random()
            z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
            return mean + z * std_dev
        if self.distribution == DistributionKindEnum.TRIANGULAR:
            if high == low:
                return low
            mode = self.mode if self.mode is not None else (low + high) / 2
            u = rng.random()
            split = (mode - low) / (high - low)
            if u < split:
                return low + math.sqrt(u * (high - low) * (mode - low))
            return high - math.sqrt((1 - u) * (high - low) * (high - mode))
        return low + rng.random() * (high - low)


class HistogramBucket(Model):
    bucket: float = Field(..., description="Bucket midpoint")
    count: int
    percentage: float


class MonteCarloResult(Model):
    iterations: int
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    percentiles: Dict[str, float] = Field(default_factory=dict)
    distribution: List[HistogramBucket] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)
    calculation_time_ms: float = 0.0
    message: Optional[str] = None

    def to_dataframe(self) -> pd.DataFrame:
        """Histogram buckets as a frame."""
        return pd.DataFrame(
            [b.model_dump() for b in self.distribution],
            columns=["bucket", "count", "percentage"],
        )


# === CACHE ===


class RecalculationCache:
    """
    Process-local TTL cache of recalculation results.

    Keys are `"{deal_id}:{sorted overrides JSON}"`; expiry is checked on read.
    """

    def __init__(self, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, Tuple[RecalculationResult, float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(deal_id: str, overrides: Sequence[ParameterOverrideInput]) -> str:
        ordered = sorted(
            ({"parameter": o.parameter, "value": o.value} for o in overrides),
            key=lambda o: o["parameter"],
        )
        return f"{deal_id}:{json.dumps(ordered, sort_keys=True, default=str)}"

    def get(
        self, deal_id: str, overrides: Sequence[ParameterOverrideInput]
    ) -> Optional[RecalculationResult]:
        key = self.key(deal_id, overrides)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            result, expires_at = entry
            if self.clock() > expires_at:
                del self._entries[key]
                return None
        return result.model_copy(update={"from_cache": True})

    def set(
        self,
        deal_id: str,
        overrides: Sequence[ParameterOverrideInput],
        result: RecalculationResult,
    ) -> None:
        with self._lock:
            self._entries[self.key(deal_id, overrides)] = (result, self.clock() + self.ttl_seconds)

    def invalidate(self, deal_id: str) -> int:
        """Drop every entry for a deal; returns the number removed."""
        prefix = f"{deal_id}:"
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# === ENGINE ===


def _as_overrides(overrides: Iterable[OverrideLike]) -> List[ParameterOverrideInput]:
    return [
        o if isinstance(o, ParameterOverrideInput) else ParameterOverrideInput.model_validate(o)
        for o in overrides
    ]


class RecalculationEngine:
    """
    Cached, parameter-aware valuation reruns.

    A new valuation engine is built from the resolved settings on every
    uncached recalculation, so concurrent evaluations never share
    configuration.

    Example:
        ```python
        engine = RecalculationEngine(ParameterResolver(InMemoryOverrideStore()))
        result = engine.recalculate("deal-1", input, [{"parameter": "dcf.discount_rate", "value": 0.1}])
        result.value
        ```
    """

    def __init__(
        self,
        resolver: ParameterResolver,
        settings: Optional[RecalculationSettings] = None,
        engine_factory: EngineFactory = create_valuation_engine,
        executor: Optional[Executor] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.resolver = resolver
        self.settings = settings or RecalculationSettings()
        self.engine_factory = engine_factory
        self.executor = executor
        self.cache = RecalculationCache(self.settings.cache_ttl_seconds, clock=clock)
        # Any override written through the resolver drops that deal's cached results
        self.resolver.add_write_listener(self.cache.invalidate)

    # === RECALCULATION ===

    def recalculate(
        self,
        deal_id: str,
        input: ValuationInput,
        overrides: Iterable[OverrideLike] = (),
    ) -> RecalculationResult:
        return self._recalculate(deal_id, input, _as_overrides(overrides), self.settings.cache_enabled)

    def _recalculate(
        self,
        deal_id: str,
        input: ValuationInput,
        overrides: List[ParameterOverrideInput],
        use_cache: bool,
    ) -> RecalculationResult:
        if use_cache:
            cached = self.cache.get(deal_id, overrides)
            if cached is not None:
                return cached

        started = time.perf_counter()
        resolved = self.resolver.resolve_with_inputs(
            deal_id, overrides, asset_type=input.facility.asset_type
        )
        valuation = self.engine_factory(resolved.settings).valuate(input)

        result = RecalculationResult(
            valuation=valuation,
            resolved_parameters=resolved,
            calculated_at=datetime.now(timezone.utc),
            calculation_time_ms=(time.perf_counter() - started) * 1000,
        )
        if use_cache:
            self.cache.set(deal_id, overrides, result)
        return result

    def _value(
        self,
        deal_id: str,
        input: ValuationInput,
        overrides: List[ParameterOverrideInput],
        use_cache: bool = True,
    ) -> float:
        return self._recalculate(
            deal_id, input, overrides, use_cache and self.settings.cache_enabled
        ).value

    # === SENSITIVITY ===

    def analyze_sensitivity(
        self,
        deal_id: str,
        input: ValuationInput,
        parameter: Union[str, ParameterPath],
        low: float,
        high: float,
        steps: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> SensitivityAnalysis:
        """Evaluate `steps + 1` evenly spaced values of one parameter."""
        path = ParameterPath.parse(parameter, strict=True)
        steps = steps or self.settings.sensitivity_steps
        step_size = (high - low) / steps

        baseline = self.recalculate(deal_id, input)
        baseline_param = _numeric(path.get(baseline.resolved_parameters.settings, input.facility.asset_type))
        baseline_value = baseline.value

        inputs = [low + i * step_size for i in range(steps + 1)]
        values = self._evaluate_all(
            [
                _bind(self._value, deal_id, input, [ParameterOverrideInput(parameter=path, value=x)])
                for x in inputs
            ],
            token,
        )

        points = [
            SensitivityPoint(
                parameter=path.value,
                value=x,
                valuation_value=v,
                change_percent=(v - baseline_value) / baseline_value * 100 if baseline_value > 0 else 0.0,
            )
            for x, v in zip(inputs, values)
        ]

        ratios = []
        if baseline_param != 0:
            for point in points:
                param_change = (point.value - baseline_param) / baseline_param * 100
                if param_change != 0:
                    ratios.append(point.change_percent / param_change)

        return SensitivityAnalysis(
            parameter=path.value,
            baseline=baseline_param,
            baseline_valuation=baseline_value,
            points=points,
            elasticity=sum(ratios) / len(ratios) if ratios else 0.0,
        )

    def tornado_analysis(
        self,
        deal_id: str,
        input: ValuationInput,
        ranges: Sequence[Union[TornadoRange, Dict[str, Any]]],
        token: Optional[CancellationToken] = None,
    ) -> List[TornadoBar]:
        """Bars sorted by value swing, largest first."""
        specs = [r if isinstance(r, TornadoRange) else TornadoRange.model_validate(r) for r in ranges]
        tasks = []
        for spec in specs:
            for x in (spec.low, spec.high):
                tasks.append(
                    _bind(
                        self._value,
                        deal_id,
                        input,
                        [ParameterOverrideInput(parameter=spec.parameter, value=x)],
                    )
                )
        values = self._evaluate_all(tasks, token)

        bars = [
            TornadoBar(
                parameter=spec.parameter,
                low_input=spec.low,
                high_input=spec.high,
                low_value=values[2 * i],
                high_value=values[2 * i + 1],
            )
            for i, spec in enumerate(specs)
        ]
        return sorted(bars, key=lambda bar: bar.range, reverse=True)

    @staticmethod
    def tornado_dataframe(bars: Sequence[TornadoBar]) -> pd.DataFrame:
        rows = [{**bar.model_dump(), "range": bar.range} for bar in bars]
        return pd.DataFrame(
            rows, columns=["parameter", "low_input", "high_input", "low_value", "high_value", "range"]
        )

    def compare_scenarios(
        self,
        deal_id: str,
        input: ValuationInput,
        scenarios: Sequence[Union[Scenario, Dict[str, Any]]],
        token: Optional[CancellationToken] = None,
    ) -> ScenarioComparison:
        specs = [s if isinstance(s, Scenario) else Scenario.model_validate(s) for s in scenarios]
        baseline = self.recalculate(deal_id, input)
        baseline_value = baseline.value

        outputs = self._evaluate_all(
            [
                _bind(self._output, deal_id, input, list(spec.parameters))
                for spec in specs
            ],
            token,
        )

        results = []
        for spec, output in zip(specs, outputs):
            value = output.result.reconciled_value
            results.append(
                ScenarioResult(
                    name=spec.name,
                    parameters=spec.parameters,
                    valuation=output,
                    absolute_diff=value - baseline_value,
                    percent_diff=(
                        (value - baseline_value) / baseline_value * 100 if baseline_value > 0 else 0.0
                    ),
                )
            )
        return ScenarioComparison(baseline=baseline.valuation, scenarios=results)

    def _output(
        self, deal_id: str, input: ValuationInput, overrides: List[ParameterOverrideInput]
    ) -> ValuationEngineOutput:
        return self._recalculate(deal_id, input, overrides, self.settings.cache_enabled).valuation

    # === MONTE CARLO ===

    def run_monte_carlo(
        self,
        deal_id: str,
        input: ValuationInput,
        distributions: Sequence[Union[DistributionSpec, Dict[str, Any]]],
        iterations: Optional[int] = None,
        seed: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> MonteCarloResult:
        """
        Sample every distribution per iteration and re-run the valuation.

        Draws are generated up front from a seeded generator, so a given
        seed reproduces the same distribution with or without an executor.
        Draws bypass the result cache.
        """
        started = time.perf_counter()
        specs = [
            d if isinstance(d, DistributionSpec) else DistributionSpec.model_validate(d)
            for d in distributions
        ]
        iterations = iterations if iterations is not None else self.settings.monte_carlo_iterations
        minimum = self.settings.monte_carlo_min_iterations
        if iterations < minimum:
            logger.warning(f"Monte Carlo on deal {deal_id}: {iterations} iterations is below {minimum}")
            return MonteCarloResult(
                iterations=iterations,
                message=f"Insufficient iterations ({iterations}/{minimum})",
            )

        rng = np.random.default_rng(seed)
        draws = [
            [ParameterOverrideInput(parameter=spec.parameter, value=spec.sample(rng)) for spec in specs]
            for _ in range(iterations)
        ]
        try:
            values = self._evaluate_all(
                [_bind(self._value, deal_id, input, draw, False) for draw in draws], token
            )
        except CalculationCancelledError as e:
            logger.warning(f"Monte Carlo on deal {deal_id} cancelled after {e.completed} draws")
            raise

        result = self.summarize(values, self.settings.histogram_buckets)
        result = result.model_copy(
            update={"calculation_time_ms": (time.perf_counter() - started) * 1000}
        )
        logger.info(
            f"Monte Carlo on deal {deal_id}: {iterations} draws, mean ${result.mean:,.0f}, "
            f"p5-p95 ${result.percentiles['p5']:,.0f}-${result.percentiles['p95']:,.0f}"
        )
        return result

    @staticmethod
    def summarize(values: Sequence[float], buckets: int = 20) -> MonteCarloResult:
        """Distribution statistics and histogram of simulated values."""
        n = len(values)
        if n == 0:
            return MonteCarloResult(iterations=0, message="No values to summarize")
        data = np.asarray(values, dtype=float)
        ordered = np.sort(data)
        low, high = float(ordered[0]), float(ordered[-1])

        def percentile(p: int) -> float:
            return float(ordered[min(int(p / 100 * n), n - 1)])

        size = (high - low) / buckets
        counts = [0] * buckets
        for value in data:
            index = int((value - low) / size) if size > 0 else 0
            counts[min(index, buckets - 1)] += 1

        return MonteCarloResult(
            iterations=n,
            mean=float(data.mean()),
            median=float(ordered[n // 2]),
            std_dev=float(data.std()),
            min=low,
            max=high,
            percentiles={f"p{p}": percentile(p) for p in PERCENTILES},
            distribution=[
                HistogramBucket(
                    bucket=low + (i + 0.5) * size, count=count, percentage=count / n * 100
                )
                for i, count in enumerate(counts)
            ],
            values=[float(v) for v in data],
        )

    # === OVERRIDE PERSISTENCE ===

    def save_overrides(
        self,
        deal_id: str,
        overrides: Iterable[OverrideLike],
        user_id: Optional[str] = None,
    ) -> List[StoredOverride]:
        """Persist overrides, then invalidate the deal's cached results."""
        saved = []
        for override in _as_overrides(overrides):
            stored = self.resolver.save_override(
                deal_id, override.parameter, override.value, user_id=user_id, reason=override.reason
            )
            if stored is not None:
                saved.append(stored)
        self.cache.invalidate(deal_id)
        return saved

    def reset_overrides(self, deal_id: str) -> int:
        """Deactivate every active override for a deal; returns the number deactivated."""
        removed = sum(
            1
            for parameter in self.resolver.active_parameters(deal_id)
            if self.resolver.remove_override(deal_id, parameter)
        )
        self.cache.invalidate(deal_id)
        logger.info(f"Reset {removed} overrides on deal {deal_id}")
        return removed

    def invalidate_cache(self, deal_id: str) -> int:
        return self.cache.invalidate(deal_id)

    # === EXECUTION ===

    def _evaluate_all(
        self, tasks: List[Callable[[], Any]], token: Optional[CancellationToken]
    ) -> List[Any]:
        total = len(tasks)
        if self.executor is None:
            results = []
            for task in tasks:
                if token is not None:
                    token.raise_if_cancelled(len(results), total)
                results.append(task())
            return results

        futures = [self.executor.submit(_guarded, task, token) for task in tasks]
        results = []
        try:
            for future in futures:
                results.append(future.result())
        except CalculationCancelledError:
            for future in futures:
                future.cancel()
            raise CalculationCancelledError(len(results), total) from None
        return results


def _numeric(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _bind(fn: Callable[..., Any], *args: Any) -> Callable[[], Any]:
    return lambda: fn(*args)


def _guarded(task: Callable[[], Any], token: Optional[CancellationToken]) -> Any:
    if token is not None and token.cancelled:
        raise CalculationCancelledError(0, 0)
    return task()


def create_recalculation_engine(
    resolver: ParameterResolver,
    settings: Optional[RecalculationSettings] = None,
    executor: Optional[Executor] = None,
) -> RecalculationEngine:
    return RecalculationEngine(resolver, settings=settings, executor=executor)
