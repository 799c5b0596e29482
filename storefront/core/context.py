"""Request-scoped audit context.

Carries the tenant and actor of the current request through service and
recorder calls as an explicit argument.
"""

from __future__ import annotations

from dataclasses import dataclass

SYSTEM_USERNAME = "system"


@dataclass(frozen=True)
class AuditContext:
    """Who is acting, and on behalf of which tenant.

    Attributes:
        tenant_id: Tenant the mutation belongs to (None for global entities)
        username: Acting user's name; "system" when unauthenticated
        ip_address: Client IP address, if known
        user_agent: Client User-Agent header, if known
    """

    tenant_id: int | None = None
    username: str = SYSTEM_USERNAME
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def system(cls, tenant_id: int | None = None) -> AuditContext:
        """Context for background jobs and scripts."""
        return cls(tenant_id=tenant_id, username=SYSTEM_USERNAME)
