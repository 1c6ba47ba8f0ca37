"""Blog, news and image endpoints.

Public readers see published posts only.  The admin routes see drafts
too and own every write.  News articles come from NewsAPI through the
three-day cache; they are never stored as posts.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, File, Query, UploadFile, status
from pydantic import Field

from lms.api.dependencies import AdminUser, CurrentUser, ServicesDep
from lms.api.schemas import CamelModel
from lms.models.blog import BlogComment, BlogPost, NewsArticle

router = APIRouter(tags=["blog"])


class BlogPostIn(CamelModel):
    title: str
    content: str = ""
    excerpt: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    status: Literal["draft", "published"] = "draft"
    image: str = ""

    def to_post(self) -> BlogPost:
        return BlogPost(**self.model_dump())


class CommentIn(CamelModel):
    text: str


class ImageOut(CamelModel):
    public_id: str
    url: str


# --- public -----------------------------------------------------------------


@router.get("/v1/blog/posts", response_model=list[BlogPost])
async def published_posts(
    services: ServicesDep,
    limit: int | None = Query(default=None, ge=1, le=100),
) -> list[BlogPost]:
    return await services.blog.list_published(limit)


@router.get("/v1/blog/posts/{post_id}", response_model=BlogPost)
async def get_post(post_id: str, services: ServicesDep) -> BlogPost:
    return await services.blog.get_post(post_id)


@router.get("/v1/blog/posts/{post_id}/comments", response_model=list[BlogComment])
async def list_comments(post_id: str, services: ServicesDep) -> list[BlogComment]:
    return await services.blog.list_comments(post_id)


@router.post(
    "/v1/blog/posts/{post_id}/comments",
    response_model=BlogComment,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: str, payload: CommentIn, principal: CurrentUser, services: ServicesDep
) -> BlogComment:
    return await services.blog.add_comment(post_id, principal, payload.text)


@router.delete(
    "/v1/blog/posts/{post_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_comment(
    post_id: str, comment_id: str, principal: CurrentUser, services: ServicesDep
) -> None:
    await services.blog.delete_comment(post_id, comment_id, principal)


@router.get("/v1/news", response_model=list[NewsArticle])
async def education_news(services: ServicesDep) -> list[NewsArticle]:
    return await services.news.fetch_education_news()


@router.get("/v1/news/search", response_model=list[NewsArticle])
async def search_news(
    services: ServicesDep, q: str = Query(min_length=1)
) -> list[NewsArticle]:
    return await services.news.search_news(q)


@router.get("/v1/news/top", response_model=list[NewsArticle])
async def top_news(services: ServicesDep) -> list[NewsArticle]:
    return await services.news.fetch_top_news()


# --- admin ------------------------------------------------------------------


@router.get("/v1/admin/blog/posts", response_model=list[BlogPost])
async def all_posts(_admin: AdminUser, services: ServicesDep) -> list[BlogPost]:
    return await services.blog.list_posts()


@router.get("/v1/admin/blog/posts/{post_id}", response_model=BlogPost)
async def admin_get_post(
    post_id: str, _admin: AdminUser, services: ServicesDep
) -> BlogPost:
    return await services.blog.get_post(post_id, include_drafts=True)


@router.post(
    "/v1/admin/blog/posts",
    response_model=BlogPost,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    payload: BlogPostIn, _admin: AdminUser, services: ServicesDep
) -> BlogPost:
    return await services.blog.create_post(payload.to_post())


@router.put("/v1/admin/blog/posts/{post_id}", response_model=BlogPost)
async def update_post(
    post_id: str, payload: BlogPostIn, _admin: AdminUser, services: ServicesDep
) -> BlogPost:
    return await services.blog.update_post(post_id, payload.to_post())


@router.delete(
    "/v1/admin/blog/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_post(post_id: str, _admin: AdminUser, services: ServicesDep) -> None:
    await services.blog.delete_post(post_id)


@router.post(
    "/v1/admin/images", response_model=ImageOut, status_code=status.HTTP_201_CREATED
)
async def upload_image(
    _admin: AdminUser,
    services: ServicesDep,
    file: UploadFile = File(...),
) -> ImageOut:
    content = await file.read()
    uploaded = await services.image_host.upload(
        file.filename or "upload",
        content,
        file.content_type or "application/octet-stream",
    )
    return ImageOut(public_id=uploaded.public_id, url=uploaded.url)


@router.delete("/v1/admin/news/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_news_cache(_admin: AdminUser, services: ServicesDep) -> None:
    await services.news.clear_cache()
