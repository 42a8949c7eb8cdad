"""HTTP API for the taxpayer registry."""
