# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Interactive Recalculation

`DebouncedCalculator` coalesces rapid parameter changes (slider drags, text
edits) into one recalculation: each call restarts a short debounce timer,
and a max-wait timer started by the first call of a burst guarantees a
result even while changes keep arriving. Only the most recent request of a
burst is executed. A calculation already running is never interrupted.

`SliderCalculator` keeps per-parameter slider state on top of it and only
sends overrides for sliders that have moved at least half a step away from
their default.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from pydantic import Field, model_validator

from ..core.primitives import InteractiveSettings, Model
from ..valuation import ValuationInput
from .parameters import ParameterOverrideInput
from .recalculation import RecalculationEngine, RecalculationResult
from .resolver import OverrideLike

logger = logging.getLogger(__name__)


class Timer(Protocol):
    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _daemon_timer(interval: float, function: Callable[[], None]) -> Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class CalculatorCallbacks(Model):
    on_start: Optional[Callable[[], None]] = None
    on_complete: Optional[Callable[[RecalculationResult], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None


class CalculatorState(Model):
    """Snapshot of a calculator's progress."""

    is_calculating: bool = False
    last_result: Optional[RecalculationResult] = None
    pending_overrides: List[ParameterOverrideInput] = Field(default_factory=list)
    error: Optional[Exception] = None


_Request = Tuple[str, ValuationInput, List[ParameterOverrideInput]]


class DebouncedCalculator:
    """
    Debounced front end to a `RecalculationEngine`.

    Example:
        ```python
        calculator = DebouncedCalculator(engine)
        calculator.set_callbacks(CalculatorCallbacks(on_complete=render))
        for rate in (0.090, 0.095, 0.100):
            calculator.calculate("deal-1", input, [{"parameter": "dcf.discount_rate", "value": rate}])
        # one recalculation, for 0.100, about 150 ms after the last call
        ```
    """

    def __init__(
        self,
        engine: RecalculationEngine,
        settings: Optional[InteractiveSettings] = None,
        timer_factory: TimerFactory = _daemon_timer,
    ):
        self.engine = engine
        self.settings = settings or InteractiveSettings()
        self.timer_factory = timer_factory
        self.callbacks = CalculatorCallbacks()

        self._lock = threading.RLock()
        self._debounce_timer: Optional[Timer] = None
        self._max_wait_timer: Optional[Timer] = None
        self._latest: Optional[_Request] = None
        self._is_calculating = False
        self._last_result: Optional[RecalculationResult] = None
        self._error: Optional[Exception] = None

    def set_callbacks(self, callbacks: CalculatorCallbacks) -> None:
        self.callbacks = callbacks

    # === SCHEDULING ===

    def calculate(
        self, deal_id: str, input: ValuationInput, overrides: Iterable[OverrideLike] = ()
    ) -> None:
        """Queue a recalculation; the latest queued request wins."""
        request = (deal_id, input, _as_list(overrides))
        with self._lock:
            self._latest = request
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
            if self._max_wait_timer is None:
                self._max_wait_timer = self.timer_factory(
                    self.settings.max_wait_ms / 1000, self._fire
                )
                self._max_wait_timer.start()
            self._debounce_timer = self.timer_factory(self.settings.debounce_ms / 1000, self._fire)
            self._debounce_timer.start()

    def calculate_immediate(
        self, deal_id: str, input: ValuationInput, overrides: Iterable[OverrideLike] = ()
    ) -> RecalculationResult:
        """Drop anything queued and calculate now; errors propagate."""
        with self._lock:
            self._clear_timers()
            self._latest = None
        return self._execute((deal_id, input, _as_list(overrides)))

    def cancel(self) -> None:
        """Drop any queued request. A running calculation still completes."""
        with self._lock:
            self._clear_timers()
            self._latest = None

    # === STATE ===

    @property
    def state(self) -> CalculatorState:
        with self._lock:
            return CalculatorState(
                is_calculating=self._is_calculating,
                last_result=self._last_result,
                pending_overrides=list(self._latest[2]) if self._latest else [],
                error=self._error,
            )

    @property
    def is_pending(self) -> bool:
        with self._lock:
            return self._debounce_timer is not None or self._is_calculating

    @property
    def last_result(self) -> Optional[RecalculationResult]:
        return self._last_result

    # === EXECUTION ===

    def _fire(self) -> None:
        with self._lock:
            request = self._latest
            self._clear_timers()
            self._latest = None
        if request is None:
            return
        try:
            self._execute(request)
        except Exception as e:
            # Already recorded in state and passed to on_error
            logger.warning(f"Debounced recalculation for deal {request[0]} failed: {e}")

    def _execute(self, request: _Request) -> RecalculationResult:
        deal_id, input, overrides = request
        with self._lock:
            self._is_calculating = True
            self._error = None
        if self.callbacks.on_start is not None:
            self.callbacks.on_start()

        try:
            result = self.engine.recalculate(deal_id, input, overrides)
        except Exception as e:
            with self._lock:
                self._is_calculating = False
                self._error = e
            if self.callbacks.on_error is not None:
                self.callbacks.on_error(e)
            raise

        with self._lock:
            self._is_calculating = False
            self._last_result = result
        if self.callbacks.on_complete is not None:
            self.callbacks.on_complete(result)
        return result

    def _clear_timers(self) -> None:
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
            self._debounce_timer = None
        if self._max_wait_timer is not None:
            self._max_wait_timer.cancel()
            self._max_wait_timer = None


def _as_list(overrides: Iterable[OverrideLike]) -> List[ParameterOverrideInput]:
    return [
        o if isinstance(o, ParameterOverrideInput) else ParameterOverrideInput.model_validate(o)
        for o in overrides
    ]


# === SLIDERS ===


class SliderConfig(Model):
    """Range, step and default of one slider-controlled parameter."""

    parameter: str
    min: float
    max: float
    step: float = Field(..., gt=0)
    default_value: float
    format: Optional[Callable[[float], str]] = None

    @model_validator(mode="after")
    def validate_range(self) -> "SliderConfig":
        if self.min >= self.max:
            raise ValueError(f"Slider '{self.parameter}': min ({self.min}) must be < max ({self.max})")
        if not self.min <= self.default_value <= self.max:
            raise ValueError(
                f"Slider '{self.parameter}': default {self.default_value} outside [{self.min}, {self.max}]"
            )
        return self

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))

    def display(self, value: float) -> str:
        return self.format(value) if self.format is not None else str(value)


class SliderState(Model):
    value: float
    display_value: str
    is_at_default: bool
    percent_of_range: float


class SliderCalculator:
    """
    Slider state plus debounced recalculation.

    Example:
        ```python
        sliders = SliderCalculator(DebouncedCalculator(engine))
        sliders.initialize("deal-1", input)
        sliders.register_slider(
            SliderConfig(parameter="dcf.discount_rate", min=0.06, max=0.14, step=0.0025, default_value=0.09)
        )
        sliders.update_slider("dcf.discount_rate", 0.1)
        sliders.overrides()  # [ParameterOverrideInput(parameter='dcf.discount_rate', value=0.1)]
        ```
    """

    def __init__(self, calculator: DebouncedCalculator):
        self.calculator = calculator
        self._sliders: Dict[str, SliderConfig] = {}
        self._values: Dict[str, float] = {}
        self._deal_id: Optional[str] = None
        self._input: Optional[ValuationInput] = None

    def initialize(self, deal_id: str, input: ValuationInput) -> None:
        self._deal_id = deal_id
        self._input = input

    def register_slider(self, config: SliderConfig) -> None:
        self._sliders[config.parameter] = config
        self._values[config.parameter] = config.default_value

    def update_slider(self, parameter: str, value: float) -> None:
        config = self._sliders.get(parameter)
        if config is None:
            logger.debug(f"Ignoring update for unregistered slider '{parameter}'")
            return
        self._values[parameter] = config.clamp(value)
        self._trigger()

    def reset_slider(self, parameter: str) -> None:
        config = self._sliders.get(parameter)
        if config is None:
            return
        self._values[parameter] = config.default_value
        self._trigger()

    def reset_all(self) -> None:
        for parameter, config in self._sliders.items():
            self._values[parameter] = config.default_value
        self._trigger()

    def slider_state(self, parameter: str) -> Optional[SliderState]:
        config = self._sliders.get(parameter)
        if config is None:
            return None
        value = self._values[parameter]
        return SliderState(
            value=value,
            display_value=config.display(value),
            is_at_default=abs(value - config.default_value) < config.step / 2,
            percent_of_range=(value - config.min) / (config.max - config.min) * 100,
        )

    def overrides(self) -> List[ParameterOverrideInput]:
        """Overrides for sliders at least half a step away from their default."""
        return [
            ParameterOverrideInput(parameter=parameter, value=value)
            for parameter, value in self._values.items()
            if abs(value - self._sliders[parameter].default_value) >= self._sliders[parameter].step / 2
        ]

    def set_callbacks(self, callbacks: CalculatorCallbacks) -> None:
        self.calculator.set_callbacks(callbacks)

    @property
    def state(self) -> CalculatorState:
        return self.calculator.state

    @property
    def last_result(self) -> Optional[RecalculationResult]:
        return self.calculator.last_result

    def _trigger(self) -> None:
        if self._deal_id is None or self._input is None:
            return
        self.calculator.calculate(self._deal_id, self._input, self.overrides())
