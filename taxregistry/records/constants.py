"""Constants for taxpayer records."""

from decimal import Decimal
from typing import Final

# Identifier generation
REFERENCE_LENGTH: Final[int] = 12
ID_BATCH_LENGTH: Final[int] = 18
MAX_IDENTIFIER_ATTEMPTS: Final[int] = 10

# Ledger
MIN_LEDGER_YEAR: Final[int] = 2000

# Field length limits
NAME_MAX_LENGTH: Final[int] = 200
TIN_MAX_LENGTH: Final[int] = 64
CERTIFICATE_NO_MAX_LENGTH: Final[int] = 100
PHONE_MAX_LENGTH: Final[int] = 20
EMAIL_MAX_LENGTH: Final[int] = 254
REVENUE_MAX_LENGTH: Final[int] = 100
PLATFORM_MAX_LENGTH: Final[int] = 100
PAYMENT_DETAILS_MAX_LENGTH: Final[int] = 200
SOURCE_OF_INCOME_MAX_LENGTH: Final[int] = 500
ADDRESS_MAX_LENGTH: Final[int] = 1000

# Money columns are Numeric(18, 2)
MONEY_PRECISION: Final[int] = 18
MONEY_SCALE: Final[int] = 2
# Smallest value a money column cannot hold
MONEY_LIMIT: Final[Decimal] = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE)

# Patterns
PHONE_PATTERN: Final[str] = r"^0[7-9][01]\d{8}$"
EMAIL_PATTERN: Final[str] = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
REFERENCE_PATTERN: Final[str] = rf"^[1-9]\d{{{REFERENCE_LENGTH - 1}}}$"
ID_BATCH_PATTERN: Final[str] = rf"^[1-9]\d{{{ID_BATCH_LENGTH - 1}}}$"

# Filter value meaning "do not filter"
FILTER_ALL: Final[str] = "all"

# Presentation
CURRENCY_SYMBOL: Final[str] = "₦"
NOT_AVAILABLE: Final[str] = "N/A"
