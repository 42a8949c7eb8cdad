"""Record validation that collects every violation before failing.

Errors are keyed by the camelCase wire path of the offending field, with
ledger entries addressed by position: ``incomeLedger[2].year``. Coercion
failures reported by Pydantic are mapped onto the same paths so callers see
one consistent error map.
"""

import re
from collections.abc import Mapping
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from taxregistry.core.dates import utc_now
from taxregistry.core.exceptions import ValidationError
from taxregistry.core.types import Clock, FieldErrors
from taxregistry.records.constants import (
    ADDRESS_MAX_LENGTH,
    CERTIFICATE_NO_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    EMAIL_PATTERN,
    ID_BATCH_LENGTH,
    ID_BATCH_PATTERN,
    MIN_LEDGER_YEAR,
    MONEY_LIMIT,
    NAME_MAX_LENGTH,
    PAYMENT_DETAILS_MAX_LENGTH,
    PHONE_PATTERN,
    PLATFORM_MAX_LENGTH,
    REFERENCE_LENGTH,
    REFERENCE_PATTERN,
    REVENUE_MAX_LENGTH,
    SOURCE_OF_INCOME_MAX_LENGTH,
    TIN_MAX_LENGTH,
)
from taxregistry.records.schemas import LedgerEntryInput, RecordInput

LEDGER_FIELD = "incomeLedger"

FIELD_LABELS = {
    "name": "Full Name",
    "tin": "TIN",
    "certificateNo": "Certificate Number",
    "issueDate": "Issue date",
    "expiryDate": "Expiry date",
    "phoneNo": "Phone Number",
    "email": "Email",
    "reference": "Reference",
    "revenue": "Revenue",
    "amount": "Amount",
    "platform": "Platform",
    "paymentDetails": "Payment details",
    "idBatch": "ID/Batch",
    "incomeLedger": "Income ledger",
    "sourceOfIncome": "Source of Income",
    "address": "Address",
    "year": "Year",
    "income": "Income",
    "taxPaid": "Tax paid",
}

REQUIRED_FIELDS = (
    ("name", "name"),
    ("certificateNo", "certificate_no"),
    ("phoneNo", "phone_no"),
    ("email", "email"),
    ("sourceOfIncome", "source_of_income"),
    ("address", "address"),
)

MAX_LENGTHS = (
    ("name", "name", NAME_MAX_LENGTH),
    ("tin", "tin", TIN_MAX_LENGTH),
    ("certificateNo", "certificate_no", CERTIFICATE_NO_MAX_LENGTH),
    ("email", "email", EMAIL_MAX_LENGTH),
    ("revenue", "revenue", REVENUE_MAX_LENGTH),
    ("platform", "platform", PLATFORM_MAX_LENGTH),
    ("paymentDetails", "payment_details", PAYMENT_DETAILS_MAX_LENGTH),
    ("sourceOfIncome", "source_of_income", SOURCE_OF_INCOME_MAX_LENGTH),
    ("address", "address", ADDRESS_MAX_LENGTH),
)

_NUMBER_ERRORS = frozenset(
    {
        "int_parsing",
        "int_from_float",
        "int_type",
        "float_parsing",
        "decimal_parsing",
        "decimal_type",
        "finite_number",
    }
)
_PHONE_RE = re.compile(PHONE_PATTERN)
_EMAIL_RE = re.compile(EMAIL_PATTERN)
_REFERENCE_RE = re.compile(REFERENCE_PATTERN)
_ID_BATCH_RE = re.compile(ID_BATCH_PATTERN)


def _add(errors: FieldErrors, path: str, message: str) -> None:
    errors.setdefault(path, []).append(message)


def ledger_path(index: int, field: str) -> str:
    """Wire path of a field on one ledger entry, e.g. ``incomeLedger[2].year``."""
    return f"{LEDGER_FIELD}[{index}].{field}"


def format_loc(loc: tuple[int | str, ...]) -> str:
    """Render a Pydantic error location as a wire path.

    >>> format_loc(("incomeLedger", 2, "year"))
    'incomeLedger[2].year'
    """
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else part
    return path or "_form"


def _coercion_message(error_type: str, loc: tuple[int | str, ...], msg: str) -> str:
    name = next((p for p in reversed(loc) if isinstance(p, str)), "")
    label = FIELD_LABELS.get(name, name or "Value")
    if error_type == "missing":
        return f"{label} is required"
    if error_type in _NUMBER_ERRORS:
        return f"{label} must be a number"
    if error_type.startswith(("datetime", "date")):
        return f"{label} must be a valid date"
    if error_type == "list_type":
        return f"{label} must be a list"
    return msg


def coercion_errors(exc: PydanticValidationError) -> FieldErrors:
    """Translate Pydantic errors into a wire-path keyed error map."""
    errors: FieldErrors = {}
    for error in exc.errors():
        loc = tuple(error["loc"])
        message = _coercion_message(error["type"], loc, error["msg"])
        _add(errors, format_loc(loc), message)
    return errors


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class RecordValidator:
    """Validates record submissions for create and update.

    Args:
        clock: Source of the current time; bounds the ledger year range.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock

    def validate(
        self, payload: Mapping[str, Any], *, require_tin: bool = False
    ) -> RecordInput:
        """Parse and validate a submission.

        Args:
            payload: Raw submission, keyed by camelCase or snake_case names.
            require_tin: Whether ``tin`` is mandatory (updates only).

        Returns:
            RecordInput: The normalized submission.

        Raises:
            ValidationError: With every violation found.
        """
        try:
            record = RecordInput.model_validate(payload)
        except PydanticValidationError as exc:
            errors = coercion_errors(exc)
            # Still report missing fields next to coercion failures
            for path, field in self._required(require_tin):
                value = payload.get(path, payload.get(field))
                if _is_blank(value) and path not in errors:
                    _add(errors, path, f"{FIELD_LABELS[path]} is required")
            logger.debug("Submission failed coercion", fields=sorted(errors))
            raise ValidationError(errors, cause=exc) from exc

        errors = self.check(record, require_tin=require_tin)
        if errors:
            logger.debug("Submission failed validation", fields=sorted(errors))
            raise ValidationError(errors)
        return record

    def check(self, record: RecordInput, *, require_tin: bool = False) -> FieldErrors:
        """Apply the business rules to a parsed submission.

        Returns:
            FieldErrors: All violations; empty when the record is valid.
        """
        errors: FieldErrors = {}

        for path, field in self._required(require_tin):
            if _is_blank(getattr(record, field)):
                _add(errors, path, f"{FIELD_LABELS[path]} is required")

        for path, field, limit in MAX_LENGTHS:
            value = getattr(record, field)
            if value is not None and len(value) > limit:
                label = FIELD_LABELS[path]
                _add(errors, path, f"{label} must be at most {limit} characters")

        if record.phone_no and not _PHONE_RE.match(record.phone_no):
            _add(
                errors,
                "phoneNo",
                "Please enter a valid Nigerian phone number "
                "starting with 07, 08, or 09",
            )

        if record.email and not _EMAIL_RE.match(record.email):
            _add(errors, "email", "Please enter a valid email address")

        if record.amount is None or record.amount <= 0:
            _add(errors, "amount", "Amount must be greater than 0")
        elif record.amount >= MONEY_LIMIT:
            _add(errors, "amount", "Amount is too large")

        if record.reference and not _REFERENCE_RE.match(record.reference):
            _add(
                errors,
                "reference",
                f"Reference must be {REFERENCE_LENGTH} digits and not start with 0",
            )

        if record.id_batch and not _ID_BATCH_RE.match(record.id_batch):
            _add(
                errors,
                "idBatch",
                f"ID/Batch must be {ID_BATCH_LENGTH} digits and not start with 0",
            )

        self._check_ledger(record.income_ledger, errors)
        return errors

    def _check_ledger(
        self, ledger: list[LedgerEntryInput], errors: FieldErrors
    ) -> None:
        current_year = self.clock().year
        seen: set[int] = set()

        for index, entry in enumerate(ledger):
            if not MIN_LEDGER_YEAR <= entry.year <= current_year:
                _add(
                    errors,
                    ledger_path(index, "year"),
                    f"Year must be between {MIN_LEDGER_YEAR} and {current_year}",
                )
            elif entry.year in seen:
                _add(
                    errors,
                    ledger_path(index, "year"),
                    f"Year {entry.year} appears more than once",
                )
            seen.add(entry.year)

            if entry.income < 0:
                _add(errors, ledger_path(index, "income"), "Income cannot be negative")
            elif entry.income >= MONEY_LIMIT:
                _add(errors, ledger_path(index, "income"), "Income is too large")
            if entry.tax_paid < 0:
                message = "Tax paid cannot be negative"
                _add(errors, ledger_path(index, "taxPaid"), message)
            elif entry.tax_paid >= MONEY_LIMIT:
                _add(errors, ledger_path(index, "taxPaid"), "Tax paid is too large")

    @staticmethod
    def _required(require_tin: bool) -> tuple[tuple[str, str], ...]:
        if require_tin:
            return (("tin", "tin"), *REQUIRED_FIELDS)
        return REQUIRED_FIELDS
