"""Tax Registry - taxpayer record management for revenue administration.

The service keeps authoritative taxpayer and tax-payment records, issues
collision-checked identifiers, validates multi-year income ledgers and
produces the reporting aggregates and derived views that certificates and
receipts are rendered from.

Architecture Overview:
- **API Layer**: FastAPI routes that call the caller-facing record operations
- **Core Layer**: Configuration, logging, tracing and the error taxonomy
- **Records Layer**: Validation, identifier generation, derived views and the
  record service
- **Infrastructure Layer**: Async SQLAlchemy persistence, record store and
  the query/aggregation engine
"""
