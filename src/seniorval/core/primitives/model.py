# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict

ModelT = TypeVar("ModelT", bound="Model")


class Model(BaseModel):
    """Base Pydantic model for every underwriting input, setting and result.

    Models are frozen value objects. Engines, caches, timers and override
    stores hold the mutable state; a model is only ever replaced.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        slots=True,
        extra="forbid",  # Unknown keys in settings trees and presets fail loudly
    )

    def validated_copy(self: ModelT, **changes: Any) -> ModelT:
        """
        Copy with `changes` applied and every field re-validated.

        Unlike `model_copy(update=...)`, out-of-range values raise
        `pydantic.ValidationError` instead of being stored as-is.
        """
        return type(self).model_validate({**self.model_dump(), **changes})
