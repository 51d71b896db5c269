# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for layered parameter resolution and override provenance."""

import pytest
from pydantic import ValidationError

from seniorval.analysis import (
    InMemoryOverrideStore,
    ParameterOverrideInput,
    ParameterPath,
    ParameterResolver,
    deep_merge,
)
from seniorval.analysis.store import PRESET_KEY
from seniorval.core.exceptions import PresetNotFoundError, UnknownParameterError
from seniorval.core.primitives import AssetTypeEnum, ParameterSourceEnum
from seniorval.valuation import ValuationSettings

Source = ParameterSourceEnum


@pytest.fixture
def resolver() -> ParameterResolver:
    return ParameterResolver(InMemoryOverrideStore())


@pytest.fixture
def strict_resolver() -> ParameterResolver:
    return ParameterResolver(InMemoryOverrideStore(), strict=True)


class TestResolveForDeal:
    def test_no_overrides_is_global(self, resolver):
        resolved = resolver.resolve_for_deal("deal-1")
        assert resolved.settings == ValuationSettings()
        assert resolved.sources == {}
        assert resolved.active_overrides == 0
        assert resolved.source_of("dcf.discount_rate") == Source.GLOBAL

    def test_deal_override_provenance(self, resolver):
        resolver.save_override("deal-1", "dcf.discount_rate", 0.11, user_id="analyst")
        resolved = resolver.resolve_for_deal("deal-1")

        assert resolved.value_of("dcf.discount_rate") == 0.11
        entry = resolved.sources["dcf.discount_rate"]
        assert entry.source == Source.DEAL_OVERRIDE
        assert entry.original_value == 0.09
        assert entry.overridden_value == 0.11
        assert entry.overridden_by == "analyst"
        assert entry.overridden_at is not None
        assert resolved.active_overrides == 1

    def test_override_equal_to_default_has_no_source(self, resolver):
        resolver.save_override("deal-1", "dcf.discount_rate", 0.09)
        resolved = resolver.resolve_for_deal("deal-1")
        assert resolved.sources == {}
        assert resolved.active_overrides == 1

    def test_every_changed_leaf_has_a_source(self, resolver):
        resolver.save_override("deal-1", "dcf.discount_rate", 0.1)
        resolver.save_override("deal-1", "weights.dcf", 0.25)
        resolver.save_override("deal-1", "enabled.replacement_cost", False)
        resolved = resolver.resolve_for_deal("deal-1")

        defaults = ValuationSettings()
        changed = {
            path.value
            for path in ParameterPath
            if path.get(resolved.settings, AssetTypeEnum.SNF) != path.get(defaults, AssetTypeEnum.SNF)
        }
        assert changed == set(resolved.sources)
        assert changed == {"dcf.discount_rate", "weights.dcf", "enabled.replacement_cost"}

    def test_asset_typed_override(self, resolver):
        resolver.save_override(
            "deal-1", "cap_rate.base_cap_rate", 0.075, asset_type=AssetTypeEnum.ALF
        )
        alf = resolver.resolve_for_deal("deal-1", asset_type=AssetTypeEnum.ALF)
        assert alf.value_of(ParameterPath.CAP_RATE_BASE) == 0.075
        assert alf.sources["cap_rate.base_cap_rate"].original_value == 0.07
        assert alf.settings.cap_rate[AssetTypeEnum.SNF].base_cap_rate == 0.10

    def test_invalid_stored_value_ignored(self, resolver):
        resolver.save_override("deal-1", "weights.dcf", 2.0)
        resolved = resolver.resolve_for_deal("deal-1")
        assert resolved.settings.weights.dcf == 0.20
        assert resolved.ignored == ["weights.dcf"]

    def test_invalid_stored_value_strict(self, strict_resolver):
        strict_resolver.save_override("deal-1", "weights.dcf", 2.0)
        with pytest.raises(ValidationError):
            strict_resolver.resolve_for_deal("deal-1")


class TestResolveWithInputs:
    def test_user_input_wins_over_deal_override(self, resolver):
        resolver.save_override("deal-1", "dcf.discount_rate", 0.11)
        resolved = resolver.resolve_with_inputs(
            "deal-1", [ParameterOverrideInput(parameter="dcf.discount_rate", value=0.12)]
        )
        entry = resolved.sources["dcf.discount_rate"]
        assert entry.source == Source.USER_INPUT
        assert entry.original_value == 0.11
        assert resolved.value_of("dcf.discount_rate") == 0.12

    def test_user_input_back_to_default_drops_source(self, resolver):
        resolver.save_override("deal-1", "dcf.discount_rate", 0.11)
        resolved = resolver.resolve_with_inputs(
            "deal-1", [{"parameter": "dcf.discount_rate", "value": 0.09}]
        )
        assert "dcf.discount_rate" not in resolved.sources
        assert resolved.source_of("dcf.discount_rate") == Source.GLOBAL

    def test_inputs_are_not_persisted(self, resolver):
        resolver.resolve_with_inputs("deal-1", [{"parameter": "dcf.hold_period", "value": 7}])
        assert resolver.resolve_for_deal("deal-1").settings.dcf.hold_period == 10

    def test_unknown_input_lenient(self, resolver):
        resolved = resolver.resolve_with_inputs(
            "deal-1",
            [
                {"parameter": "dcf.bogus", "value": 1},
                {"parameter": "dcf.hold_period", "value": 5},
            ],
        )
        assert resolved.ignored == ["dcf.bogus"]
        assert resolved.settings.dcf.hold_period == 5

    def test_unknown_input_strict(self, strict_resolver):
        with pytest.raises(UnknownParameterError):
            strict_resolver.resolve_with_inputs("deal-1", [{"parameter": "dcf.bogus", "value": 1}])


class TestPersistence:
    def test_save_unknown_parameter(self, resolver, strict_resolver):
        assert resolver.save_override("deal-1", "dcf.bogus", 1) is None
        with pytest.raises(UnknownParameterError):
            strict_resolver.save_override("deal-1", "dcf.bogus", 1)

    def test_save_records_global_original(self, resolver):
        stored = resolver.save_override("deal-1", "dcf.exit_cap_rate", 0.1, reason="Buyer view")
        assert stored.category == "dcf"
        assert stored.key == "exit_cap_rate"
        assert stored.original_value == 0.095
        assert stored.reason == "Buyer view"

    def test_remove_override(self, resolver):
        resolver.save_override("deal-1", "dcf.discount_rate", 0.11)
        assert resolver.remove_override("deal-1", "dcf.discount_rate")
        assert not resolver.remove_override("deal-1", "dcf.discount_rate")
        assert not resolver.remove_override("deal-1", "dcf.bogus")
        assert resolver.resolve_for_deal("deal-1").settings.dcf.discount_rate == 0.09

    def test_active_parameters(self, resolver):
        preset_id = resolver.create_preset("Empty", {})
        resolver.save_override("deal-1", "weights.dcf", 0.3)
        resolver.apply_preset("deal-1", preset_id)
        assert sorted(resolver.active_parameters("deal-1")) == [PRESET_KEY, "weights.dcf"]


class TestPresets:
    def test_preset_layer(self, resolver):
        preset_id = resolver.create_preset(
            "Conservative",
            {"dcf": {"discount_rate": 0.11}, "weights": {"dcf": 0.3}},
            created_by="analyst",
        )
        resolver.apply_preset("deal-1", preset_id, user_id="analyst")
        resolved = resolver.resolve_for_deal("deal-1")

        assert resolved.preset_name == "Conservative"
        assert resolved.source_of("dcf.discount_rate") == Source.PRESET
        assert resolved.source_of("weights.dcf") == Source.PRESET
        assert resolved.settings.dcf.exit_cap_rate == 0.095
        assert resolved.active_overrides == 0

    def test_deal_override_beats_preset(self, resolver):
        preset_id = resolver.create_preset("Conservative", {"dcf": {"discount_rate": 0.11}})
        resolver.apply_preset("deal-1", preset_id)
        resolver.save_override("deal-1", "dcf.discount_rate", 0.12)
        entry = resolver.resolve_for_deal("deal-1").sources["dcf.discount_rate"]

        assert entry.source == Source.DEAL_OVERRIDE
        assert entry.original_value == 0.11

    def test_preset_from_settings_model(self, resolver):
        settings = ParameterPath.CAP_RATE_BASE.set(ValuationSettings(), AssetTypeEnum.SNF, 0.11)
        resolver.apply_preset("deal-1", resolver.create_preset("Tight", settings))
        resolved = resolver.resolve_for_deal("deal-1")
        assert set(resolved.sources) == {"cap_rate.base_cap_rate"}
        assert resolved.settings.cap_rate[AssetTypeEnum.SNF].size == settings.cap_rate[AssetTypeEnum.SNF].size

    def test_unknown_preset(self, resolver):
        with pytest.raises(PresetNotFoundError):
            resolver.apply_preset("deal-1", "missing")

    def test_removing_preset(self, resolver):
        preset_id = resolver.create_preset("Conservative", {"dcf": {"discount_rate": 0.11}})
        resolver.apply_preset("deal-1", preset_id)
        assert resolver.remove_override("deal-1", PRESET_KEY)
        resolved = resolver.resolve_for_deal("deal-1")
        assert resolved.preset_name is None
        assert resolved.sources == {}

    def test_invalid_preset_ignored(self, resolver):
        preset_id = resolver.create_preset("Broken", {"weights": {"dcf": 5}})
        resolver.apply_preset("deal-1", preset_id)
        resolved = resolver.resolve_for_deal("deal-1")
        assert resolved.preset_name is None
        assert resolved.settings == ValuationSettings()

    def test_get_presets_by_asset_type(self, resolver):
        resolver.create_preset("Any", {})
        resolver.create_preset("Nursing", {}, applicable_asset_types=[AssetTypeEnum.SNF])
        assert [p.name for p in resolver.get_presets(AssetTypeEnum.ALF)] == ["Any"]
        assert len(resolver.get_presets(AssetTypeEnum.SNF)) == 2
        assert len(resolver.get_presets()) == 2


class TestDeepMerge:
    def test_nested_merge_without_mutation(self):
        target = {"dcf": {"discount_rate": 0.09, "hold_period": 10}, "weights": {"dcf": 0.2}}
        source = {"dcf": {"discount_rate": 0.11}}
        merged = deep_merge(target, source)

        assert merged == {"dcf": {"discount_rate": 0.11, "hold_period": 10}, "weights": {"dcf": 0.2}}
        assert target["dcf"]["discount_rate"] == 0.09

    def test_lists_replace(self):
        assert deep_merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}
