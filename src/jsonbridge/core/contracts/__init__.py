"""Pydantic contracts shared across the pipeline stages."""

from __future__ import annotations

from .block import BlockDefinition

__all__ = ["BlockDefinition"]
