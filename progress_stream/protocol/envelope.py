"""Inbound envelope model for progress stream frames."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InboundEnvelope(BaseModel):
    """Top-level shape of a server frame.

    Every field is optional and unknown keys are kept, since servers put
    payload fields either under ``data`` or directly at the top level.
    """

    model_config = ConfigDict(extra="allow")

    kind: Optional[str] = Field(default=None, alias="type")
    data: Any = None
    error: Any = None
    message: Any = None

    @field_validator("kind", mode="before")
    @classmethod
    def _string_kind_only(cls, value: Any) -> Optional[str]:
        if isinstance(value, str):
            return value
        return None
