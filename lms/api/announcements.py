from __future__ import annotations

from fastapi import APIRouter, Query, status

from lms.api.dependencies import AdminUser, ServicesDep
from lms.api.schemas import CamelModel
from lms.models.blog import Announcement

router = APIRouter(tags=["announcements"])


class AnnouncementIn(CamelModel):
    text: str


@router.get("/v1/announcements", response_model=list[Announcement])
async def list_announcements(
    services: ServicesDep,
    limit: int | None = Query(default=None, ge=1, le=100),
) -> list[Announcement]:
    return await services.blog.list_announcements(limit)


@router.get("/v1/announcements/latest", response_model=Announcement | None)
async def latest_announcement(services: ServicesDep) -> Announcement | None:
    return await services.blog.latest_announcement()


@router.post(
    "/v1/admin/announcements",
    response_model=Announcement,
    status_code=status.HTTP_201_CREATED,
)
async def create_announcement(
    payload: AnnouncementIn, principal: AdminUser, services: ServicesDep
) -> Announcement:
    return await services.blog.create_announcement(payload.text, principal)
