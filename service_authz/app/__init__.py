"""
Authorization service application package.

- app.main: FastAPI service exposing the decision endpoints.
- app.decision: Ties token verification to rule evaluation, fails closed.
- app.jwks: JWKS client with per-key TTL cache.
- app.validation: Token peek/verify and the development bypass.
- app.directory: Read-only directory records and the in-memory snapshot.
- app.rules: Permission table and the allow rules.

Module import must not perform network calls; key fetches happen lazily on
the first decision that needs them.
"""
