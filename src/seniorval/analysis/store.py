# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Override Storage

Path-addressable storage for deal-level parameter overrides and named
algorithm presets. `OverrideStore` is the contract the resolver depends on;
`InMemoryOverrideStore` is the process-local implementation used by tests
and single-process deployments.

Overrides are keyed by `(deal_id, category, key)`. Saving upserts; removing
marks the record inactive so the audit trail survives.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import uuid4

from pydantic import Field

from ..core.primitives import AssetTypeEnum, Model

logger = logging.getLogger(__name__)

PRESET_KEY = "__preset__"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StoredOverride(Model):
    """One persisted override row."""

    deal_id: str
    category: str = Field(..., description="First path segment, e.g. 'dcf'")
    key: str = Field(..., description="Remaining path, e.g. 'discount_rate', or '__preset__'")
    override_value: Any
    original_value: Any = None
    applied_by: Optional[str] = None
    reason: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)

    @property
    def parameter(self) -> str:
        return f"{self.category}.{self.key}" if self.category else self.key

    @property
    def is_preset(self) -> bool:
        return self.key == PRESET_KEY


class AlgorithmPreset(Model):
    """A named bundle of settings deep-merged over the global defaults."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    description: Optional[str] = None
    preset_type: str = "custom"
    applicable_asset_types: Optional[List[AssetTypeEnum]] = None
    settings: Dict[str, Any] = Field(
        default_factory=dict, description="Partial settings tree in JSON form"
    )
    is_public: bool = False
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class OverrideStore(Protocol):
    """Persistence contract for overrides and presets."""

    def active_overrides(self, deal_id: str) -> List[StoredOverride]:
        ...

    def get_override(self, deal_id: str, category: str, key: str) -> Optional[StoredOverride]:
        ...

    def upsert_override(self, override: StoredOverride) -> StoredOverride:
        ...

    def deactivate_override(self, deal_id: str, category: str, key: str) -> bool:
        ...

    def get_preset(self, preset_id: str) -> Optional[AlgorithmPreset]:
        ...

    def insert_preset(self, preset: AlgorithmPreset) -> AlgorithmPreset:
        ...

    def list_presets(self) -> List[AlgorithmPreset]:
        ...


class InMemoryOverrideStore:
    """
    Thread-safe, process-local override store.

    Example:
        ```python
        store = InMemoryOverrideStore()
        resolver = ParameterResolver(store)
        resolver.save_override("deal-1", "dcf.discount_rate", 0.11, user_id="analyst")
        ```
    """

    def __init__(self) -> None:
        self._overrides: Dict[Tuple[str, str, str], StoredOverride] = {}
        self._presets: Dict[str, AlgorithmPreset] = {}
        self._lock = threading.Lock()

    # === OVERRIDES ===

    def active_overrides(self, deal_id: str) -> List[StoredOverride]:
        with self._lock:
            return [
                o for (deal, _, _), o in self._overrides.items() if deal == deal_id and o.is_active
            ]

    def all_overrides(self, deal_id: str) -> List[StoredOverride]:
        """Active and inactive rows for a deal (the audit trail)."""
        with self._lock:
            return [o for (deal, _, _), o in self._overrides.items() if deal == deal_id]

    def get_override(self, deal_id: str, category: str, key: str) -> Optional[StoredOverride]:
        with self._lock:
            return self._overrides.get((deal_id, category, key))

    def upsert_override(self, override: StoredOverride) -> StoredOverride:
        row_key = (override.deal_id, override.category, override.key)
        with self._lock:
            self._overrides[row_key] = override
        return override

    def deactivate_override(self, deal_id: str, category: str, key: str) -> bool:
        row_key = (deal_id, category, key)
        with self._lock:
            existing = self._overrides.get(row_key)
            if existing is None or not existing.is_active:
                return False
            self._overrides[row_key] = existing.model_copy(update={"is_active": False})
        return True

    # === PRESETS ===

    def get_preset(self, preset_id: str) -> Optional[AlgorithmPreset]:
        with self._lock:
            return self._presets.get(preset_id)

    def insert_preset(self, preset: AlgorithmPreset) -> AlgorithmPreset:
        with self._lock:
            if preset.id in self._presets:
                raise ValueError(f"Preset id '{preset.id}' already exists")
            self._presets[preset.id] = preset
        logger.debug(f"Stored preset '{preset.name}' ({preset.id})")
        return preset

    def list_presets(self) -> List[AlgorithmPreset]:
        with self._lock:
            return [p for p in self._presets.values() if p.is_active]
