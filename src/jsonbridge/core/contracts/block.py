"""
Block Definition Contract

This Pydantic model describes one independent block: a named sub-document
pattern that is detached from its embedding context and persisted on its
own, referenced afterwards only by its key.

The foreign-key token is derived from ``name`` and ``key_field`` on demand
and is never stored independently, so the two can never disagree.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_validator

from jsonbridge.core.errors import InvalidBlockNameError
from jsonbridge.core.tokens import generate, parse, sanitize

# Block names are the token segment before the first underscore.
_NAME_RE = re.compile(r"^[A-Za-z0-9]+$")
_KEY_FIELD_RE = re.compile(r"^[A-Za-z0-9_]+$")


class BlockDefinition(BaseModel):
    """An independent block and the key field identifying its instances."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Property name marking the block (e.g. 'users').")
    key_field: str = Field(..., description="Property holding each instance's key (e.g. 'id_user').")

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, v: object) -> str:
        name = sanitize(str(v)) if v is not None else ""
        if not name:
            raise ValueError("Block name cannot be empty.")
        if not _NAME_RE.match(name):
            raise ValueError(
                f"Block name '{name}' may only contain letters and digits "
                "(an underscore would make its foreign-key token ambiguous)."
            )
        return name

    @field_validator("key_field", mode="before")
    @classmethod
    def _check_key_field(cls, v: object) -> str:
        key_field = sanitize(str(v)) if v is not None else ""
        if not key_field:
            raise ValueError("Key field cannot be empty.")
        if not _KEY_FIELD_RE.match(key_field):
            raise ValueError(
                f"Key field '{key_field}' may only contain letters, digits and underscores."
            )
        return key_field

    @computed_field  # type: ignore[prop-decorator]
    @property
    def foreign_key_token(self) -> str:
        """Property name substituted for this block at every extraction site."""
        return generate(self.name, self.key_field)

    def __str__(self) -> str:
        return f"{self.name} (key: {self.key_field})"

    @classmethod
    def create(cls, name: str, key_field: str) -> BlockDefinition:
        """Build a definition, reporting bad input as :class:`InvalidBlockNameError`."""
        try:
            return cls(name=name, key_field=key_field)
        except ValidationError as exc:
            messages = "; ".join(str(e.get("msg", "")) for e in exc.errors())
            raise InvalidBlockNameError(messages) from exc

    @classmethod
    def from_token(cls, token: str) -> BlockDefinition:
        """Rebuild the definition a foreign-key token was generated from."""
        fk = parse(token)
        return cls.create(fk.block_name, fk.key_field)


__all__ = ["BlockDefinition"]
