# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Callable, Dict, List

from ...core.primitives import RiskCategoryEnum
from .base import RiskEvaluationData, RiskFactorDefinition, RiskFactorResult

RISK_FACTOR_REGISTRY: Dict[str, RiskFactorDefinition] = {}

Evaluator = Callable[[RiskEvaluationData], RiskFactorResult]


def register_risk_factor(
    id: str,
    category: RiskCategoryEnum,
    name: str,
    weight: float,
    data_source: str,
    description: str = "",
) -> Callable[[Evaluator], Evaluator]:
    """
    A decorator to register an evaluation function as a default risk factor.

    The decorated function is returned unchanged so it stays directly
    callable in tests.
    """

    def decorator(evaluate: Evaluator) -> Evaluator:
        if id in RISK_FACTOR_REGISTRY:
            raise ValueError(f"Risk factor '{id}' is already registered.")
        RISK_FACTOR_REGISTRY[id] = RiskFactorDefinition(
            id=id,
            category=category,
            name=name,
            weight=weight,
            description=description,
            data_source=data_source,
            evaluate=evaluate,
        )
        return evaluate

    return decorator


def get_risk_factor(factor_id: str) -> RiskFactorDefinition:
    """
    Look up a registered factor definition.

    Raises:
        KeyError: If no factor is registered under `factor_id`
    """
    try:
        return RISK_FACTOR_REGISTRY[factor_id]
    except KeyError:
        raise KeyError(f"No risk factor registered with id '{factor_id}'") from None


def default_risk_factors() -> List[RiskFactorDefinition]:
    """All registered factors in registration order."""
    return list(RISK_FACTOR_REGISTRY.values())


def factors_by_category(
    category: RiskCategoryEnum, factors: List[RiskFactorDefinition] = None
) -> List[RiskFactorDefinition]:
    factors = default_risk_factors() if factors is None else factors
    return [f for f in factors if f.category == category]
