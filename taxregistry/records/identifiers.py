"""Collision-checked numeric identifiers.

References (12 digits) and ID/Batch numbers (18 digits) are random digit
strings that never start with zero. Uniqueness is checked against the record
store before a candidate is accepted; the store's unique index stays the final
authority, since another writer can claim a value between check and insert.
"""

import random
from typing import Protocol

from loguru import logger

from taxregistry.core.exceptions import GenerationExhaustedError
from taxregistry.records.constants import MAX_IDENTIFIER_ATTEMPTS

_SYSTEM_RANDOM = random.SystemRandom()


class UniquenessChecker(Protocol):
    """Anything that can tell whether a unique field value is taken."""

    async def exists_with(
        self, field: str, value: str, exclude_id: int | None = None
    ) -> bool: ...


def generate(
    length: int,
    allow_leading_zero: bool = False,
    rng: random.Random | None = None,
) -> str:
    """Generate a random digit string.

    Args:
        length: Number of digits.
        allow_leading_zero: Whether the first digit may be 0.
        rng: Random source; defaults to the OS entropy source.

    Returns:
        str: Digit string of exactly ``length`` characters.
    """
    if length < 1:
        msg = f"Identifier length must be positive, got {length}"
        raise ValueError(msg)

    rng = rng or _SYSTEM_RANDOM
    first = rng.choice("0123456789" if allow_leading_zero else "123456789")
    rest = "".join(rng.choice("0123456789") for _ in range(length - 1))
    return first + rest


class IdentifierGenerator:
    """Proposes identifiers until one is free in the store.

    Args:
        checker: Store used to look up existing values.
        rng: Random source; inject a seeded ``random.Random`` in tests.
        max_attempts: Candidates tried per field before giving up.
    """

    def __init__(
        self,
        checker: UniquenessChecker,
        rng: random.Random | None = None,
        max_attempts: int = MAX_IDENTIFIER_ATTEMPTS,
    ) -> None:
        self.checker = checker
        self.rng = rng
        self.max_attempts = max_attempts

    async def ensure_unique(
        self,
        field: str,
        length: int,
        candidate: str | None = None,
        exclude_id: int | None = None,
    ) -> str:
        """Return a value for ``field`` that no other record holds.

        A supplied ``candidate`` is tried first; every following attempt uses a
        freshly generated value.

        Args:
            field: Wire name of the unique field (``reference`` or ``idBatch``).
            length: Digit count of generated values.
            candidate: Caller-supplied value to try first.
            exclude_id: Record to ignore, for updates.

        Returns:
            str: A value that was free at the time of the check.

        Raises:
            GenerationExhaustedError: If every attempt collided.
        """
        value = candidate or generate(length, rng=self.rng)

        for attempt in range(1, self.max_attempts + 1):
            if not await self.checker.exists_with(field, value, exclude_id):
                if attempt > 1:
                    logger.debug(
                        "Found free {} after {} attempts", field, attempt
                    )
                return value
            logger.debug("Identifier collision on {} (attempt {})", field, attempt)
            value = generate(length, rng=self.rng)

        logger.error(
            "Identifier generation exhausted",
            field=field,
            attempts=self.max_attempts,
        )
        raise GenerationExhaustedError(field, self.max_attempts)
