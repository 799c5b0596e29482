"""FastAPI dependency that builds the AuditContext for a request.

Tenant and actor come from request headers set by the upstream gateway.
"""

from __future__ import annotations

import ipaddress

from fastapi import Header, HTTPException, Request, status

from storefront.core.context import SYSTEM_USERNAME, AuditContext


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
    else:
        candidate = request.client.host if request.client else None
    if not candidate:
        return None
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return None
    return candidate


def get_audit_context(
    request: Request,
    x_tenant_id: str | None = Header(None),
    x_username: str | None = Header(None),
) -> AuditContext:
    """Build the AuditContext from X-Tenant-ID / X-Username headers.

    Raises:
        HTTPException: 400 if X-Tenant-ID is not an integer
    """
    tenant_id = None
    if x_tenant_id:
        try:
            tenant_id = int(x_tenant_id)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="X-Tenant-ID must be an integer",
            ) from e

    return AuditContext(
        tenant_id=tenant_id,
        username=x_username or SYSTEM_USERNAME,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
