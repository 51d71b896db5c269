# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Parameter Resolver

Produces the effective valuation settings for a deal by layering:

1. Global defaults (`ValuationSettings()` unless injected)
2. A named preset, when the deal has an active `__preset__` override; the
   preset's partial settings tree is deep-merged over the defaults
3. Individual deal overrides, each addressed by a `ParameterPath`
4. Session-only user inputs (never persisted)

Every leaf that ends up different from the global default carries a
`ParameterSource` entry recording where its value came from and the value it
replaced. Leaves that end where they started carry no entry.

Unknown or malformed parameter paths are logged and skipped by default so
interactive recalculation survives stale UI state; `strict=True` raises
`UnknownParameterError` (or the underlying `ValidationError`) instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import Field, ValidationError

from ..core.exceptions import PresetNotFoundError
from ..core.primitives import AssetTypeEnum, Model, ParameterSourceEnum
from ..valuation import ValuationSettings
from .parameters import ParameterOverrideInput, ParameterPath
from .store import PRESET_KEY, AlgorithmPreset, OverrideStore, StoredOverride

logger = logging.getLogger(__name__)

PRESET_CATEGORY = "preset"


class ParameterSource(Model):
    """Provenance of one overridden leaf."""

    source: ParameterSourceEnum
    original_value: Any = None
    overridden_value: Any = None
    overridden_by: Optional[str] = None
    overridden_at: Optional[datetime] = None


class ResolvedParameters(Model):
    """Effective settings for one deal plus the provenance of every change."""

    settings: ValuationSettings
    asset_type: AssetTypeEnum = AssetTypeEnum.SNF
    sources: Dict[str, ParameterSource] = Field(default_factory=dict)
    active_overrides: int = 0
    preset_name: Optional[str] = None
    ignored: List[str] = Field(
        default_factory=list, description="Parameter paths skipped as unknown or invalid"
    )

    def source_of(self, parameter: Union[str, ParameterPath]) -> ParameterSourceEnum:
        """Where the effective value of a leaf came from (global when untouched)."""
        path = ParameterPath.parse(parameter)
        key = path.value if path is not None else str(parameter)
        entry = self.sources.get(key)
        return entry.source if entry is not None else ParameterSourceEnum.GLOBAL

    def value_of(self, parameter: Union[str, ParameterPath]) -> Any:
        return ParameterPath.parse(parameter, strict=True).get(self.settings, self.asset_type)


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge `source` over `target` without mutating either.

    Only nested dicts are merged recursively; lists and scalars in `source`
    replace the target value wholesale.
    """
    result = dict(target)
    for key, value in source.items():
        current = result.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


OverrideLike = Union[ParameterOverrideInput, Dict[str, Any]]


class ParameterResolver:
    """
    Resolves, persists and explains deal-level parameter overrides.

    Example:
        ```python
        resolver = ParameterResolver(InMemoryOverrideStore())
        resolver.save_override("deal-1", "dcf.discount_rate", 0.11, user_id="analyst")
        resolved = resolver.resolve_with_inputs(
            "deal-1", [ParameterOverrideInput(parameter="dcf.exit_cap_rate", value=0.1)]
        )
        resolved.sources["dcf.discount_rate"].source  # ParameterSourceEnum.DEAL_OVERRIDE
        ```
    """

    def __init__(
        self,
        store: OverrideStore,
        global_settings: Optional[ValuationSettings] = None,
        strict: bool = False,
    ):
        self.store = store
        self.global_settings = global_settings or ValuationSettings()
        self.strict = strict
        self._write_listeners: List[Callable[[str], Any]] = []

    def add_write_listener(self, listener: Callable[[str], Any]) -> None:
        """Call `listener(deal_id)` after every override write for a deal."""
        self._write_listeners.append(listener)

    def _notify_write(self, deal_id: str) -> None:
        for listener in self._write_listeners:
            listener(deal_id)

    # === RESOLUTION ===

    def resolve_for_deal(
        self, deal_id: str, asset_type: AssetTypeEnum = AssetTypeEnum.SNF
    ) -> ResolvedParameters:
        """Global defaults, then the deal's preset, then its stored overrides."""
        overrides = self.store.active_overrides(deal_id)
        settings = self.global_settings
        sources: Dict[str, ParameterSource] = {}
        ignored: List[str] = []
        preset_name: Optional[str] = None

        preset_row = next((o for o in overrides if o.is_preset), None)
        if preset_row is not None:
            preset = self._load_preset(str(preset_row.override_value))
            if preset is not None:
                merged = self._merge_preset(settings, preset)
                if merged is not None:
                    for path in ParameterPath:
                        before = path.get(settings, asset_type)
                        after = path.get(merged, asset_type)
                        if before != after:
                            sources[path.value] = ParameterSource(
                                source=ParameterSourceEnum.PRESET,
                                original_value=before,
                                overridden_value=after,
                                overridden_by=preset_row.applied_by,
                                overridden_at=preset_row.created_at,
                            )
                    settings = merged
                    preset_name = preset.name

        deal_overrides = [o for o in overrides if not o.is_preset]
        for override in deal_overrides:
            settings = self._apply(
                settings,
                asset_type,
                override.parameter,
                override.override_value,
                ParameterSourceEnum.DEAL_OVERRIDE,
                sources,
                ignored,
                overridden_by=override.applied_by,
                overridden_at=override.created_at,
            )

        resolved = ResolvedParameters(
            settings=settings,
            asset_type=asset_type,
            sources=self._changed_only(settings, asset_type, sources),
            active_overrides=len(deal_overrides),
            preset_name=preset_name,
            ignored=ignored,
        )
        logger.debug(
            f"Resolved deal {deal_id}: {resolved.active_overrides} overrides, "
            f"{len(resolved.sources)} changed leaves, preset={preset_name}"
        )
        return resolved

    def resolve_with_inputs(
        self,
        deal_id: str,
        inputs: Iterable[OverrideLike],
        asset_type: AssetTypeEnum = AssetTypeEnum.SNF,
    ) -> ResolvedParameters:
        """Deal resolution plus session-only user inputs layered on top."""
        resolved = self.resolve_for_deal(deal_id, asset_type)
        settings = resolved.settings
        sources = dict(resolved.sources)
        ignored = list(resolved.ignored)

        for item in inputs:
            override = (
                item if isinstance(item, ParameterOverrideInput)
                else ParameterOverrideInput.model_validate(item)
            )
            settings = self._apply(
                settings,
                asset_type,
                override.parameter,
                override.value,
                ParameterSourceEnum.USER_INPUT,
                sources,
                ignored,
            )

        return resolved.model_copy(
            update={
                "settings": settings,
                "sources": self._changed_only(settings, asset_type, sources),
                "ignored": ignored,
            }
        )

    # === PERSISTENCE ===

    def save_override(
        self,
        deal_id: str,
        parameter: Union[str, ParameterPath],
        value: Any,
        user_id: Optional[str] = None,
        reason: Optional[str] = None,
        asset_type: AssetTypeEnum = AssetTypeEnum.SNF,
    ) -> Optional[StoredOverride]:
        """
        Upsert a deal override keyed by (deal, category, key).

        Returns None when the path is unknown and the resolver is lenient.
        """
        path = ParameterPath.parse(parameter, strict=self.strict)
        if path is None:
            logger.warning(f"Not saving override for unknown parameter '{parameter}' on deal {deal_id}")
            return None

        stored = self.store.upsert_override(
            StoredOverride(
                deal_id=deal_id,
                category=path.section,
                key=path.leaf,
                override_value=value,
                original_value=path.get(self.global_settings, asset_type),
                applied_by=user_id,
                reason=reason,
            )
        )
        logger.info(f"Saved override {path.value}={value!r} on deal {deal_id}")
        self._notify_write(deal_id)
        return stored

    def remove_override(self, deal_id: str, parameter: Union[str, ParameterPath]) -> bool:
        """Deactivate an override; the row is kept for audit."""
        if parameter == PRESET_KEY:
            category, key = PRESET_CATEGORY, PRESET_KEY
        else:
            path = ParameterPath.parse(parameter, strict=self.strict)
            if path is None:
                logger.warning(f"Not removing override for unknown parameter '{parameter}'")
                return False
            category, key = path.section, path.leaf
        removed = self.store.deactivate_override(deal_id, category, key)
        if removed:
            logger.info(f"Deactivated override {category}.{key} on deal {deal_id}")
            self._notify_write(deal_id)
        return removed

    def active_parameters(self, deal_id: str) -> List[str]:
        """Store paths of every active override for a deal, preset marker included."""
        return [
            PRESET_KEY if o.is_preset else o.parameter
            for o in self.store.active_overrides(deal_id)
        ]

    # === PRESETS ===

    def apply_preset(
        self, deal_id: str, preset_id: str, user_id: Optional[str] = None
    ) -> StoredOverride:
        if self.store.get_preset(preset_id) is None:
            raise PresetNotFoundError(preset_id)
        stored = self.store.upsert_override(
            StoredOverride(
                deal_id=deal_id,
                category=PRESET_CATEGORY,
                key=PRESET_KEY,
                override_value=preset_id,
                applied_by=user_id,
                reason="Applied preset",
            )
        )
        logger.info(f"Applied preset {preset_id} to deal {deal_id}")
        self._notify_write(deal_id)
        return stored

    def get_presets(self, asset_type: Optional[AssetTypeEnum] = None) -> List[AlgorithmPreset]:
        """Active presets, optionally only those applicable to one asset type."""
        presets = self.store.list_presets()
        if asset_type is None:
            return presets
        return [
            p for p in presets
            if not p.applicable_asset_types or asset_type in p.applicable_asset_types
        ]

    def create_preset(
        self,
        name: str,
        settings: Union[ValuationSettings, Dict[str, Any]],
        description: Optional[str] = None,
        preset_type: str = "custom",
        applicable_asset_types: Optional[List[AssetTypeEnum]] = None,
        is_public: bool = False,
        created_by: Optional[str] = None,
    ) -> str:
        """Store a preset and return its id."""
        tree = settings.model_dump(mode="json") if isinstance(settings, ValuationSettings) else settings
        preset = self.store.insert_preset(
            AlgorithmPreset(
                name=name,
                description=description,
                preset_type=preset_type,
                applicable_asset_types=applicable_asset_types,
                settings=tree,
                is_public=is_public,
                created_by=created_by,
            )
        )
        return preset.id

    # === INTERNALS ===

    def _apply(
        self,
        settings: ValuationSettings,
        asset_type: AssetTypeEnum,
        parameter: str,
        value: Any,
        source: ParameterSourceEnum,
        sources: Dict[str, ParameterSource],
        ignored: List[str],
        overridden_by: Optional[str] = None,
        overridden_at: Optional[datetime] = None,
    ) -> ValuationSettings:
        path = ParameterPath.parse(parameter, strict=self.strict)
        if path is None:
            logger.warning(f"Ignoring unknown parameter path '{parameter}'")
            ignored.append(str(parameter))
            return settings

        try:
            updated = path.set(settings, asset_type, value)
        except ValidationError as e:
            if self.strict:
                raise
            logger.warning(f"Ignoring invalid value {value!r} for '{path.value}': {e.error_count()} errors")
            ignored.append(path.value)
            return settings

        before = path.get(settings, asset_type)
        after = path.get(updated, asset_type)
        if before != after:
            sources[path.value] = ParameterSource(
                source=source,
                original_value=before,
                overridden_value=after,
                overridden_by=overridden_by,
                overridden_at=overridden_at,
            )
        return updated

    def _changed_only(
        self,
        settings: ValuationSettings,
        asset_type: AssetTypeEnum,
        sources: Dict[str, ParameterSource],
    ) -> Dict[str, ParameterSource]:
        """Drop entries whose leaf ended up back at its global default."""
        return {
            key: entry
            for key, entry in sources.items()
            if ParameterPath(key).get(settings, asset_type)
            != ParameterPath(key).get(self.global_settings, asset_type)
        }

    def _load_preset(self, preset_id: str) -> Optional[AlgorithmPreset]:
        preset = self.store.get_preset(preset_id)
        if preset is None:
            if self.strict:
                raise PresetNotFoundError(preset_id)
            logger.warning(f"Preset '{preset_id}' not found; using global defaults")
        return preset

    def _merge_preset(
        self, settings: ValuationSettings, preset: AlgorithmPreset
    ) -> Optional[ValuationSettings]:
        merged = deep_merge(settings.model_dump(mode="json"), preset.settings)
        try:
            return ValuationSettings.model_validate(merged)
        except ValidationError:
            if self.strict:
                raise
            logger.warning(f"Preset '{preset.name}' does not produce valid settings; ignoring it")
            return None
