"""Response schemas specific to the HTTP surface."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from taxregistry.records.schemas import CamelModel
from taxregistry.records.views import TaxpayerView


class VerificationView(CamelModel):
    """Public answer to a verification link.

    Anyone holding the link can open it, so contact details, the address and
    payment identifiers are left out.
    """

    id: int
    name: str
    tin: str | None
    certificate_no: str
    issue_date: datetime
    expiry_date: datetime
    status: Literal["active", "expired"]
    is_expired: bool
    days_until_expiry: int
    latest_year: int | None
    total_tax_paid: Decimal

    @classmethod
    def from_view(cls, view: TaxpayerView) -> "VerificationView":
        return cls(
            id=view.id,
            name=view.name,
            tin=view.tin,
            certificate_no=view.certificate_no,
            issue_date=view.issue_date.iso,
            expiry_date=view.expiry_date.iso,
            status=view.status,
            is_expired=view.is_expired,
            days_until_expiry=view.days_until_expiry,
            latest_year=view.latest_year,
            total_tax_paid=view.total_tax_paid,
        )
