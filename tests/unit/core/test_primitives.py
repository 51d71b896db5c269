# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for core primitives: base model, settings and exceptions."""

import pytest
from pydantic import ValidationError

from seniorval.core.exceptions import (
    CalculationCancelledError,
    PresetNotFoundError,
    UnderwritingError,
    UnknownParameterError,
)
from seniorval.core.primitives import (
    EnabledMethods,
    ExpenseCategoryEnum,
    InteractiveSettings,
    MethodWeights,
    ReconciliationMethodEnum,
    ReconciliationSettings,
    RiskCategoryEnum,
    RiskCategoryWeights,
    RiskRatingThresholds,
    ValuationMethodKind,
)


class TestModelConfig:
    def test_models_are_frozen(self):
        weights = MethodWeights()
        with pytest.raises(ValidationError):
            weights.cap_rate = 0.5

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            MethodWeights(cap_rat=0.3)

    def test_model_copy_leaves_original_unchanged(self):
        weights = MethodWeights()
        updated = weights.model_copy(update={"dcf": 0.4})
        assert updated.dcf == 0.4
        assert weights.dcf == 0.2

    def test_validated_copy(self):
        weights = MethodWeights()
        assert weights.validated_copy(dcf=0.4).dcf == 0.4
        with pytest.raises(ValidationError):
            weights.validated_copy(dcf=1.4)
        with pytest.raises(ValidationError):
            weights.validated_copy(dcff=0.4)


class TestMethodSettings:
    def test_default_weights(self):
        weights = MethodWeights()
        assert weights.for_method(ValuationMethodKind.CAP_RATE) == 0.30
        assert weights.for_method(ValuationMethodKind.PRICE_PER_BED) == 0.20
        assert weights.for_method(ValuationMethodKind.REPLACEMENT_COST) == 0.10

    def test_weight_bounds(self):
        with pytest.raises(ValidationError):
            MethodWeights(cap_rate=1.5)

    def test_all_methods_enabled_by_default(self):
        enabled = EnabledMethods()
        assert all(enabled.is_enabled(kind) for kind in ValuationMethodKind)

    def test_reconciliation_rejects_none_method(self):
        with pytest.raises(ValidationError, match="result marker"):
            ReconciliationSettings(method=ReconciliationMethodEnum.NONE)

    def test_confidence_multipliers(self):
        rules = ReconciliationSettings()
        assert rules.confidence_multipliers == {"high": 1.2, "medium": 1.0, "low": 0.7}


class TestRiskSettings:
    def test_category_weights_sum_to_one(self):
        weights = RiskCategoryWeights()
        total = sum(weights.for_category(c) for c in RiskCategoryEnum)
        assert total == pytest.approx(1.0)

    def test_thresholds_must_descend(self):
        with pytest.raises(ValidationError, match="descending"):
            RiskRatingThresholds(critical=50, high=60)


class TestInteractiveSettings:
    def test_defaults(self):
        settings = InteractiveSettings()
        assert settings.debounce_ms == 150
        assert settings.max_wait_ms == 500

    def test_max_wait_must_cover_debounce(self):
        with pytest.raises(ValidationError, match="max_wait_ms"):
            InteractiveSettings(debounce_ms=300, max_wait_ms=200)


class TestExpenseCategories:
    def test_labor_and_non_operating_are_disjoint(self):
        labor = ExpenseCategoryEnum.labor_categories()
        below_line = ExpenseCategoryEnum.non_operating_categories()
        assert not labor & below_line
        assert ExpenseCategoryEnum.AGENCY_NURSING in labor
        assert ExpenseCategoryEnum.RENT not in below_line


class TestExceptions:
    def test_unknown_parameter_is_value_error(self):
        error = UnknownParameterError("dcf.bogus")
        assert isinstance(error, ValueError)
        assert isinstance(error, UnderwritingError)
        assert error.parameter == "dcf.bogus"
        assert "dcf.bogus" in str(error)

    def test_preset_not_found_is_key_error(self):
        with pytest.raises(KeyError):
            raise PresetNotFoundError("missing")

    def test_cancelled_carries_progress(self):
        error = CalculationCancelledError(3, 10)
        assert (error.completed, error.requested) == (3, 10)
        assert "3 of 10" in str(error)
