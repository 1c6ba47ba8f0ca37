"""Certificate endpoints.

Any learner-facing certificate route issues on demand: the first visit at
100% mints the verification id, later visits return the same one.  The
verify route is public so employers can check an id without an account.
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from starlette.concurrency import run_in_threadpool

from lms.api.dependencies import CurrentUser, ServicesDep
from lms.api.schemas import CamelModel
from lms.models.certificate import Certificate, CertificateState
from lms.services.certificate_render import (
    render_certificate_pdf,
    render_certificate_png,
)

router = APIRouter(tags=["certificates"])


class IssuedOut(CamelModel):
    certificate: Certificate
    outcome: str


class StateOut(CamelModel):
    course_id: str
    state: CertificateState


@router.get("/v1/courses/{course_id}/certificate", response_model=IssuedOut)
async def get_certificate(
    course_id: str, principal: CurrentUser, services: ServicesDep
) -> IssuedOut:
    issued = await services.certificates.issue(principal, course_id)
    return IssuedOut(certificate=issued.certificate, outcome=issued.outcome)


@router.get("/v1/courses/{course_id}/certificate/state", response_model=StateOut)
async def certificate_state(
    course_id: str, principal: CurrentUser, services: ServicesDep
) -> StateOut:
    state = await services.certificates.state(principal.user_id, course_id)
    return StateOut(course_id=course_id, state=state)


@router.get("/v1/courses/{course_id}/certificate.png")
async def certificate_png(
    course_id: str, principal: CurrentUser, services: ServicesDep
) -> Response:
    issued = await services.certificates.issue(principal, course_id)
    cert = issued.certificate
    content = await run_in_threadpool(
        render_certificate_png, cert, services.settings.certificate_verify_url
    )
    return Response(
        content=content,
        media_type="image/png",
        headers={
            "Content-Disposition": f'inline; filename="{cert.verification_id}.png"'
        },
    )


@router.get("/v1/courses/{course_id}/certificate.pdf")
async def certificate_pdf(
    course_id: str, principal: CurrentUser, services: ServicesDep
) -> Response:
    issued = await services.certificates.issue(principal, course_id)
    cert = issued.certificate
    content = await run_in_threadpool(
        render_certificate_pdf, cert, services.settings.certificate_verify_url
    )
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": (
                f'attachment; filename="certificate-{cert.verification_id}.pdf"'
            )
        },
    )


@router.get("/v1/certificates/{verification_id}/verify", response_model=Certificate)
async def verify_certificate(verification_id: str, services: ServicesDep) -> Certificate:
    return await services.certificates.verify(verification_id)
