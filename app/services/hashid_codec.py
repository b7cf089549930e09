"""Opaque album identifiers.

Public album URLs carry a Hashids token instead of the sequential lock id, so
printed QR codes cannot be enumerated by counting. Tokens are deterministic
for a given salt: rotating ``HASHIDS_SALT`` breaks every link already issued.
"""

from __future__ import annotations

import re
from typing import Iterable

from hashids import Hashids

from app.core.config import HashidsSettings, settings
from app.schemas.common import MAX_ROW_ID

MIN_TOKEN_LENGTH = 6
MAX_TOKEN_LENGTH = 20
TOKEN_PATTERN = re.compile(rf"^[a-zA-Z0-9]{{{MIN_TOKEN_LENGTH},{MAX_TOKEN_LENGTH}}}$")


def is_valid_row_id(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ROW_ID


class HashIdCodec:
    """Two-way mapping between positive row ids and short public tokens."""

    def __init__(self, salt: str, min_length: int = 6) -> None:
        if not salt:
            raise ValueError("salt must be a non-empty string")
        if not MIN_TOKEN_LENGTH <= min_length <= MAX_TOKEN_LENGTH:
            # shorter or longer tokens would fail the shape check in decode
            raise ValueError(f"min_length must be in {MIN_TOKEN_LENGTH}..{MAX_TOKEN_LENGTH}")
        self._hashids = Hashids(salt=salt, min_length=min_length)
        self.min_length = min_length

    @classmethod
    def from_settings(cls, hashids_settings: HashidsSettings | None = None) -> "HashIdCodec":
        cfg = hashids_settings or settings.hashids
        return cls(salt=cfg.salt, min_length=cfg.min_length)

    def encode(self, row_id: int) -> str:
        """Encode a row id.

        Raises:
            ValueError: If row_id is not within 1..2^31-1.
        """
        if not is_valid_row_id(row_id):
            raise ValueError(f"row id must be an integer in 1..{MAX_ROW_ID}")
        return self._hashids.encode(row_id)

    def decode(self, token: object) -> int | None:
        """Decode a token back to its row id; ``None`` for anything invalid.

        Never raises. Tokens outside the public shape, with foreign
        characters or a failing checksum all decode to ``None``. When a
        token carries several numbers, the first one is used.
        """
        if not isinstance(token, str) or not TOKEN_PATTERN.match(token):
            return None

        numbers = self._hashids.decode(token)
        if not numbers:
            return None

        row_id = numbers[0]
        return row_id if is_valid_row_id(row_id) else None

    def encode_many(self, row_ids: Iterable[int]) -> list[str]:
        return [self.encode(row_id) for row_id in row_ids]

    def decode_many(self, tokens: Iterable[object]) -> list[int]:
        """Decode tokens, silently dropping the ones that do not resolve."""

        decoded = (self.decode(token) for token in tokens)
        return [row_id for row_id in decoded if row_id is not None]
