"""Unit tests for the registry exception hierarchy."""

import pytest

from taxregistry.core.exceptions import (
    FORM_ERROR_KEY,
    DuplicateKeyError,
    ErrorKind,
    GenerationExhaustedError,
    MalformedIdError,
    NotFoundError,
    Severity,
    StoreUnavailableError,
    TaxRegistryError,
    ValidationError,
)


@pytest.mark.unit
class TestErrorKind:
    def test_kinds_are_closed_set(self) -> None:
        assert {kind.value for kind in ErrorKind} == {
            "VALIDATION_ERROR",
            "DUPLICATE_KEY",
            "GENERATION_EXHAUSTED",
            "NOT_FOUND",
            "MALFORMED_ID",
            "STORE_UNAVAILABLE",
            "INTERNAL_ERROR",
        }

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValueError, match="'CONFLICT' is not a valid"):
            ErrorKind("CONFLICT")


@pytest.mark.unit
class TestTaxRegistryError:
    """Test the base exception's context, severity and fingerprinting."""

    def test_basic_attributes(self) -> None:
        error = TaxRegistryError(ErrorKind.INTERNAL_ERROR, "Something broke")

        assert error.error_code == "INTERNAL_ERROR"
        assert error.severity is Severity.MEDIUM
        assert error.context == {}
        assert str(error) == "[INTERNAL_ERROR] Something broke"
        assert error.is_expected
        assert not error.should_alert

    def test_cause_is_chained(self) -> None:
        cause = ValueError("bad")
        error = TaxRegistryError(ErrorKind.INTERNAL_ERROR, "Wrapped", cause=cause)

        assert error.cause is cause
        assert error.__cause__ is cause

    def test_fingerprint_is_stable_for_same_origin(self) -> None:
        def make() -> TaxRegistryError:
            return TaxRegistryError(ErrorKind.INTERNAL_ERROR, "same place")

        assert make().fingerprint == make().fingerprint
        assert len(make().fingerprint) == 16

    def test_field_errors_fall_back_to_form_key(self) -> None:
        error = TaxRegistryError(ErrorKind.INTERNAL_ERROR, "Not about a field")
        assert error.field_errors() == {FORM_ERROR_KEY: ["Not about a field"]}

    def test_repr_includes_context(self) -> None:
        error = NotFoundError(42)
        assert "NOT_FOUND" in repr(error)
        assert "'record_id': '42'" in repr(error)


@pytest.mark.unit
class TestSpecializedErrors:
    def test_validation_error_keeps_every_message(self) -> None:
        errors = {"amount": ["Amount must be greater than 0"], "email": ["a", "b"]}
        error = ValidationError(errors)

        assert error.kind is ErrorKind.VALIDATION_ERROR
        assert error.severity is Severity.LOW
        assert error.field_errors() == errors
        assert error.context == {"fields": ["amount", "email"]}

    def test_validation_error_copies_input(self) -> None:
        errors = {"amount": ["Amount must be greater than 0"]}
        error = ValidationError(errors)
        errors["amount"].append("mutated")

        assert error.field_errors() == {"amount": ["Amount must be greater than 0"]}

    @pytest.mark.parametrize(
        ("field", "message"),
        [
            ("certificateNo", "Certificate number already exists"),
            ("reference", "Reference number already exists"),
            ("idBatch", "ID/Batch already exists"),
        ],
    )
    def test_duplicate_key_is_keyed_by_field(self, field: str, message: str) -> None:
        error = DuplicateKeyError(field)

        assert error.kind is ErrorKind.DUPLICATE_KEY
        assert error.field == field
        assert error.field_errors() == {field: [message]}

    def test_generation_exhausted_alerts(self) -> None:
        error = GenerationExhaustedError("reference", 10)

        assert error.attempts == 10
        assert error.should_alert
        assert "after 10 attempts" in error.message

    def test_not_found_and_malformed_id(self) -> None:
        assert NotFoundError(7).message == "Taxpayer record not found"
        assert MalformedIdError("abc").message == "Invalid taxpayer ID format"
        assert MalformedIdError("abc").kind is ErrorKind.MALFORMED_ID

    def test_store_unavailable(self) -> None:
        cause = OSError("connection refused")
        error = StoreUnavailableError(cause=cause)

        assert error.kind is ErrorKind.STORE_UNAVAILABLE
        assert error.should_alert
        assert error.field_errors() == {
            FORM_ERROR_KEY: ["Database connection error. Please try again."]
        }
