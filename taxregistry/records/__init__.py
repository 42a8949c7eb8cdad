"""Taxpayer records: validation, identifiers, views, documents and the service."""
