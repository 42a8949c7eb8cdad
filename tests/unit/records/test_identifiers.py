"""Unit tests for collision-checked identifier generation."""

import random

import pytest
from pytest_mock import MockerFixture

from taxregistry.core.exceptions import GenerationExhaustedError
from taxregistry.records.constants import (
    ID_BATCH_LENGTH,
    MAX_IDENTIFIER_ATTEMPTS,
    REFERENCE_LENGTH,
)
from taxregistry.records.identifiers import IdentifierGenerator, generate


class FakeChecker:
    """Uniqueness checker backed by a set of taken values."""

    def __init__(
        self, taken: set[str] | None = None, always_taken: bool = False
    ) -> None:
        self.taken = taken or set()
        self.always_taken = always_taken
        self.calls: list[tuple[str, str, int | None]] = []

    async def exists_with(
        self, field: str, value: str, exclude_id: int | None = None
    ) -> bool:
        self.calls.append((field, value, exclude_id))
        return self.always_taken or value in self.taken


@pytest.mark.unit
class TestGenerate:
    @pytest.mark.parametrize("length", [REFERENCE_LENGTH, ID_BATCH_LENGTH, 1])
    def test_length_and_leading_digit(self, length: int) -> None:
        rng = random.Random(1)
        for _ in range(200):
            value = generate(length, rng=rng)
            assert len(value) == length
            assert value.isdigit()
            assert value[0] != "0"

    def test_leading_zero_when_allowed(self) -> None:
        rng = random.Random(7)
        first_digits = {
            generate(4, allow_leading_zero=True, rng=rng)[0] for _ in range(500)
        }
        assert "0" in first_digits

    def test_rejects_non_positive_length(self) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            generate(0)

    def test_default_source_is_system_random(self, mocker: MockerFixture) -> None:
        choice = mocker.patch(
            "taxregistry.records.identifiers._SYSTEM_RANDOM.choice", return_value="5"
        )
        assert generate(3) == "555"
        assert choice.call_count == 3


@pytest.mark.unit
class TestIdentifierGenerator:
    async def test_free_candidate_is_kept(self) -> None:
        checker = FakeChecker()
        generator = IdentifierGenerator(checker, rng=random.Random(3))

        value = await generator.ensure_unique(
            "reference", REFERENCE_LENGTH, "123456789012"
        )

        assert value == "123456789012"
        assert checker.calls == [("reference", "123456789012", None)]

    async def test_taken_candidate_is_replaced(self) -> None:
        checker = FakeChecker(taken={"123456789012"})
        generator = IdentifierGenerator(checker, rng=random.Random(3))

        value = await generator.ensure_unique(
            "reference", REFERENCE_LENGTH, "123456789012"
        )

        assert value != "123456789012"
        assert len(value) == REFERENCE_LENGTH
        assert len(checker.calls) == 2

    async def test_exclude_id_is_forwarded(self) -> None:
        checker = FakeChecker()
        generator = IdentifierGenerator(checker, rng=random.Random(3))

        await generator.ensure_unique("idBatch", ID_BATCH_LENGTH, exclude_id=9)

        assert checker.calls[0][2] == 9

    async def test_gives_up_after_max_attempts(self) -> None:
        checker = FakeChecker(always_taken=True)
        generator = IdentifierGenerator(checker, rng=random.Random(3))

        with pytest.raises(GenerationExhaustedError) as exc_info:
            await generator.ensure_unique("idBatch", ID_BATCH_LENGTH)

        assert exc_info.value.attempts == MAX_IDENTIFIER_ATTEMPTS
        assert exc_info.value.context["field"] == "idBatch"
        assert len(checker.calls) == MAX_IDENTIFIER_ATTEMPTS == 10
