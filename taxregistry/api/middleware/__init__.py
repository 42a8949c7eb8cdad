"""FastAPI middleware for cross-cutting request/response concerns.

- **RequestContextMiddleware**: Correlation ids and request timing logs
- **error_handler**: Centralized exception handling with consistent error
  responses
"""
