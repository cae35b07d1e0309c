from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_portal_session
from app.api.schemas import CertificateOut
from app.services.portal_session import PortalSession

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


@router.get("", response_model=list[CertificateOut])
async def list_certificates(
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> list[CertificateOut]:
    """Certificates for every completed course, newest first."""
    return [CertificateOut.of(c) for c in session.certificates()]


@router.get("/{course_id}", response_model=CertificateOut)
async def get_certificate(
    course_id: UUID,
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> CertificateOut:
    cert = session.certificate_for(course_id)
    if cert is None:
        raise HTTPException(status_code=404, detail="no certificate for this course")
    return CertificateOut.of(cert)
