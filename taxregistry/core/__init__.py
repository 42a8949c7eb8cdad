"""Core infrastructure package for shared application functionality.

- **config**: Centralized configuration management with environment support
- **exceptions**: Closed error taxonomy with severities and field errors
- **logging**: Structured logging with PII redaction
- **observability**: Distributed tracing with OpenTelemetry
- **types**: Type aliases shared across layers
"""
