from __future__ import annotations

from typing import Literal

from pydantic import Field

from lms.models.base import Record

PostStatus = Literal["draft", "published"]

BLOG_CATEGORIES = (
    "Education Technology",
    "Nigerian Education",
    "STEM",
    "Higher Education",
    "Educational Resources",
    "Career Development",
)


class BlogPost(Record):
    id: str | None = None
    title: str
    content: str = ""
    excerpt: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = "draft"
    image: str = ""
    author: str = "Admin"
    published_at: str | None = None
    updated_at: str | None = None


class BlogComment(Record):
    id: str | None = None
    post_id: str
    user_id: str
    user_name: str
    text: str
    created_at: str


class Announcement(Record):
    id: str | None = None
    text: str
    timestamp: str
    created_by: str


class NewsSource(Record):
    name: str = ""
    type: str = "api"


class NewsArticle(Record):
    id: str
    title: str = ""
    content: str | None = None
    excerpt: str | None = None
    image: str
    author: str
    published_at: str | None = None
    source: NewsSource = Field(default_factory=NewsSource)
    url: str
    category: str
    tags: list[str] = Field(default_factory=list)
