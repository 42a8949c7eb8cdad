"""Document payloads for certificates, receipts and payment slips.

The registry supplies data only: a derived view, the document's verification
link and, for certificates, the ledger table. Turning that into PDF or HTML
bytes is the job of a ``DocumentRenderer``. Rendering is synchronous and
never retried; renderer errors reach the caller unchanged.
"""

from datetime import datetime
from enum import Enum
from typing import Protocol

import orjson
from loguru import logger

from taxregistry.core.config import RegistryConfig
from taxregistry.records.schemas import CamelModel
from taxregistry.records.views import (
    CertificateColumn,
    TaxpayerView,
    certificate_table,
    verification_url,
)


class DocumentTemplate(str, Enum):
    """Documents that can be rendered for a record."""

    CERTIFICATE = "certificate"
    RECEIPT = "receipt"
    SLIP = "slip"


class DocumentPayload(CamelModel):
    """Everything a renderer needs to produce one document."""

    template: DocumentTemplate
    record: TaxpayerView
    verification_url: str
    generated_at: datetime
    ledger_table: list[CertificateColumn] | None = None


class DocumentRenderer(Protocol):
    """Turns a payload into document bytes."""

    media_type: str

    def render(self, payload: DocumentPayload) -> bytes: ...


class JsonDocumentRenderer:
    """Renders the payload itself as JSON.

    Useful wherever the real template engine lives in another service, and in
    tests.
    """

    media_type = "application/json"

    def render(self, payload: DocumentPayload) -> bytes:
        return orjson.dumps(
            payload.model_dump(mode="json", by_alias=True),
            option=orjson.OPT_SORT_KEYS,
        )


def document_link(
    template: DocumentTemplate, record_id: int, config: RegistryConfig
) -> str:
    """Verification link printed on a document.

    Certificates link to the verification page; receipts and slips link to
    the taxpayer document page.
    """
    if template is DocumentTemplate.CERTIFICATE:
        path_template = config.verification_path_template
    else:
        path_template = config.receipt_path_template
    return verification_url(config.public_base_url, path_template, record_id)


def build_payload(
    view: TaxpayerView,
    template: DocumentTemplate,
    config: RegistryConfig,
    generated_at: datetime,
) -> DocumentPayload:
    table = None
    if template is DocumentTemplate.CERTIFICATE:
        table = certificate_table(view.income_ledger, config.certificate_years)

    return DocumentPayload(
        template=template,
        record=view,
        verification_url=document_link(template, view.id, config),
        generated_at=generated_at,
        ledger_table=table,
    )


def render_document(renderer: DocumentRenderer, payload: DocumentPayload) -> bytes:
    """Render a payload once, letting renderer errors propagate."""
    logger.debug(
        "Rendering {} document",
        payload.template.value,
        record_id=payload.record.id,
    )
    return renderer.render(payload)
