"""
Session authorization service.
"""

from typing import Optional

import httpx
from fastapi import Header

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.retry import RetryConfig
from .decision import DecisionPoint
from .directory import DirectoryIndex, InMemoryDirectory
from .jwks.client import JWKSClient
from .rules.engine import AuthorizationEvaluator
from .rules.models import AuthorizationRequest, AuthorizationResponse, PolicyQuery, PolicyResult
from .rules.permissions import PermissionTable
from .validation.dev_bypass import DevBypass
from .validation.token_validator import TokenValidator


class AuthzService(BaseService):
    """Authorization service implementation."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 directory: Optional[DirectoryIndex] = None,
                 permissions: Optional[PermissionTable] = None,
                 jwks_transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__("authz", config)
        self.config.validate_required()

        self.directory = directory if directory is not None else self._load_directory()
        self.permissions = permissions if permissions is not None else self._load_permissions()
        if isinstance(self.directory, InMemoryDirectory):
            for kind, count in self.directory.stats().items():
                self.metrics.set_gauge("directory_records", count, kind=kind)

        self.jwks_client = JWKSClient(
            self.config.jwks_url,
            cache_ttl=self.config.jwks_cache_ttl,
            timeout=self.config.jwks_fetch_timeout,
            retry_config=RetryConfig(
                max_attempts=self.config.jwks_fetch_attempts,
                base_delay=self.config.jwks_retry_base_delay,
                max_delay=2.0
            ),
            transport=jwks_transport,
            metrics=self.metrics
        )
        self.token_validator = TokenValidator(
            self.jwks_client,
            issuer=self.config.issuer,
            audience=self.config.audience,
            subject_claim=self.config.subject_claim,
            dev_bypass=DevBypass.from_config(self.config)
        )
        self.decision_point = DecisionPoint(
            self.token_validator,
            AuthorizationEvaluator(self.directory, self.permissions),
            metrics=self.metrics
        )

        self._setup_authz_routes()

    def _load_directory(self) -> DirectoryIndex:
        if not self.config.directory_path:
            self.logger.warning("No directory snapshot configured, every rule will deny")
            return InMemoryDirectory()
        return InMemoryDirectory.load_json(self.config.directory_path)

    def _load_permissions(self) -> PermissionTable:
        if not self.config.permissions_path:
            return PermissionTable()
        return PermissionTable.load_json(self.config.permissions_path)

    def _setup_authz_routes(self):
        """Set up authorization routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "authz",
                "message": "Session authorization service",
                "version": "1.0.0"
            }

        @self.app.post("/v1/data/session/allow", response_model=PolicyResult)
        async def policy_allow(query: PolicyQuery, authorization: Optional[str] = Header(None)):
            """Policy-engine style decision used by the sessions service."""
            allowed = await self.decision_point.authorize(
                query.input.token or authorization,
                query.input.parameters.proposal,
                query.input.parameters.visit
            )
            return PolicyResult(result=allowed)

        @self.app.post("/authz/decide", response_model=AuthorizationResponse)
        async def decide(request: AuthorizationRequest, authorization: Optional[str] = Header(None)):
            """Flat decision endpoint."""
            allowed = await self.decision_point.authorize(
                request.token or authorization,
                request.proposal,
                request.visit
            )
            return AuthorizationResponse(allow=allowed)

    async def _check_dependencies(self):
        """Report local state; the key set is fetched lazily and not probed here."""
        return {
            "directory": self.directory.stats() if isinstance(self.directory, InMemoryDirectory) else "external",
            "permission_table": len(self.permissions),
            "jwks_cache": self.jwks_client.cache_stats()
        }


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = AuthzService(config, **kwargs)
    return service.app


def main():
    service = AuthzService()
    service.run()


if __name__ == "__main__":
    main()
