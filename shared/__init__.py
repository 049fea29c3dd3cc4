"""
Shared utilities for the session authorization service.

This package aggregates common building blocks:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator with backoff
- base_service: FastAPI service skeleton (health, metrics, error handlers)

Do not import from service_* packages into shared/.
"""
