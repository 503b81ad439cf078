"""FastAPI dependencies for tenant scoping and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.db.session import SessionLocal


# Tenant context is resolved upstream (auth/session layer) and forwarded
TENANT_HEADER = "X-Tenant-ID"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    
    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_tenant_scope(
    x_tenant_id: str | None = Header(None, alias=TENANT_HEADER),
    db: Session = Depends(get_db),
) -> UUID:
    """
    Get tenant_id for query scoping.
    
    Every settings query MUST filter by this value
    to ensure proper tenant isolation.
    
    Raises:
        HTTPException 400: Header missing or malformed
        HTTPException 404: Unknown tenant
    """
    from app.db.models import Tenant

    if not x_tenant_id:
        raise HTTPException(status_code=400, detail="Tenant context missing")
    try:
        tenant_id = UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid tenant id")

    if db.get(Tenant, tenant_id) is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant_id


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.
    
    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).
    
    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403, 
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
