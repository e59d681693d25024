"""Foreign-key token codec.

A foreign-key token is the property name that replaces a detached block in
its original location::

    {"contacts": {"id_contact": 9, ...}}  ->  {"_IB_contacts_id_contact": 9}

Grammar
-------
``_IB_<name>_<key_field>`` where both parts use ``[A-Za-z0-9_]``. Spaces are
removed by :func:`sanitize` before encoding, never encoded.

Parsing splits on the *first* underscore after the prefix, so a block name
cannot itself contain an underscore (key fields can). The registry enforces
that rule, which keeps ``parse(generate(name, key)) == (name, key)`` for
every registrable pair.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from jsonbridge.core.errors import MalformedTokenError
from jsonbridge.core.result import Result, err, ok

TOKEN_PREFIX = "_IB_"
TOKEN_PATTERN = re.compile(r"^_IB_[A-Za-z0-9_]+_[A-Za-z0-9_]+$")


class ForeignKey(NamedTuple):
    """Decoded token components; compares equal to ``(block_name, key_field)``."""

    block_name: str
    key_field: str


def sanitize(value: str) -> str:
    """Remove every space from ``value``."""
    return value.replace(" ", "")


def generate(name: str, key_field: str) -> str:
    """Return the token for ``name`` and ``key_field`` (both sanitized)."""
    return f"{TOKEN_PREFIX}{sanitize(name)}_{sanitize(key_field)}"


def is_valid_format(token: object) -> bool:
    """Return True if ``token`` is a string following the token grammar."""
    if not isinstance(token, str) or not token.strip():
        return False
    return TOKEN_PATTERN.match(token) is not None


def parse(token: str) -> ForeignKey:
    """Decode ``token`` into its block name and key field.

    Raises
    ------
    MalformedTokenError
        If ``token`` does not follow the grammar, or splitting on the first
        underscore after the prefix leaves an empty segment.
    """
    if not is_valid_format(token):
        raise MalformedTokenError(f"'{token}' is not a foreign-key token.")

    body = token[len(TOKEN_PREFIX) :]
    name, sep, key_field = body.partition("_")
    if not sep:
        raise MalformedTokenError(f"'{token}' has no separator between block and key.")
    if not name or not key_field:
        raise MalformedTokenError(f"'{token}' does not contain a block name and a key field.")
    return ForeignKey(name, key_field)


def try_parse(token: str) -> Result[ForeignKey, str]:
    """Non-raising :func:`parse`: ``Err(reason)`` for anything that is not a token."""
    try:
        return ok(parse(token))
    except MalformedTokenError as exc:
        return err(str(exc))


__all__ = [
    "TOKEN_PREFIX",
    "TOKEN_PATTERN",
    "ForeignKey",
    "sanitize",
    "generate",
    "is_valid_format",
    "parse",
    "try_parse",
]
