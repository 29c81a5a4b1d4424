"""
Shared utilities for firebase-edge-auth.

This package aggregates the common building blocks used by every adapter:

- config: Library configuration via pydantic-settings
- logging: Structured logging with trace correlation
- errors: Canonical error types and responses
- retry: Retry decorators for remote calls
- circuit_breaker: Resilient external call protection
- test_helpers: Keys, certificates and signed tokens for tests

Do not import from the adapter packages into shared/.
"""
