from __future__ import annotations

import logging
import re

from lms.core.errors import NotFoundError, PermissionDenied, ValidationFailed
from lms.models.base import iso_timestamp, utc_now
from lms.models.blog import Announcement, BlogComment, BlogPost
from lms.models.principal import Principal
from lms.services.progress import Clock
from lms.stores.document_store import DocumentStore, FieldFilter, document_path

logger = logging.getLogger(__name__)

BLOG_POSTS = "blog_posts"
BLOG_COMMENTS = "blog_comments"
ANNOUNCEMENTS = "announcements"

_DRIVE_FILE_RE = re.compile(r"/file/d/([^/?#]+)")
_DRIVE_ID_RE = re.compile(r"[?&]id=([^&#]+)")


class PostNotFound(NotFoundError):
    def __init__(self, post_id: str) -> None:
        super().__init__(f"Post not found: {post_id}")


class CommentNotFound(NotFoundError):
    def __init__(self, comment_id: str) -> None:
        super().__init__(f"Comment not found: {comment_id}")


def convert_drive_link(url: str) -> str:
    """Rewrite a Google Drive share link to its direct-view form.

    Anything that is not a recognisable Drive link is returned unchanged.
    """
    if "drive.google.com" not in url:
        return url
    match = _DRIVE_FILE_RE.search(url) or _DRIVE_ID_RE.search(url)
    if match is None:
        return url
    return f"https://drive.google.com/uc?export=view&id={match.group(1)}"


class BlogService:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def _now(self) -> str:
        return iso_timestamp(self._clock())

    # --- posts ---

    async def _load_post(self, post_id: str) -> BlogPost:
        doc = await self._store.get(document_path(BLOG_POSTS, post_id))
        if doc is None:
            raise PostNotFound(post_id)
        return BlogPost.from_document(doc)

    async def list_posts(self) -> list[BlogPost]:
        """Every post, drafts included, newest first."""
        docs = await self._store.query(BLOG_POSTS, order_by="publishedAt", descending=True)
        return [BlogPost.from_document(d) for d in docs]

    async def list_published(self, limit: int | None = None) -> list[BlogPost]:
        docs = await self._store.query(
            BLOG_POSTS,
            where=[FieldFilter("status", "==", "published")],
            order_by="publishedAt",
            descending=True,
            limit=limit,
        )
        return [BlogPost.from_document(d) for d in docs]

    async def get_post(self, post_id: str, *, include_drafts: bool = False) -> BlogPost:
        post = await self._load_post(post_id)
        if post.status != "published" and not include_drafts:
            raise PostNotFound(post_id)
        return post

    def _validate(self, post: BlogPost) -> None:
        if not post.title.strip():
            raise ValidationFailed("Post title is required")

    async def create_post(self, post: BlogPost) -> BlogPost:
        self._validate(post)
        now = self._now()
        stored = post.model_copy(
            update={
                "id": None,
                "image": convert_drive_link(post.image),
                "author": "Admin",
                "published_at": now,
                "updated_at": now,
            }
        )
        post_id = await self._store.add(BLOG_POSTS, stored.to_document())
        logger.info("Blog post created id=%s status=%s", post_id, stored.status)
        return stored.model_copy(update={"id": post_id})

    async def update_post(self, post_id: str, post: BlogPost) -> BlogPost:
        self._validate(post)
        existing = await self._load_post(post_id)
        now = self._now()
        stored = post.model_copy(
            update={
                "id": post_id,
                "image": convert_drive_link(post.image),
                "author": "Admin",
                "published_at": existing.published_at or now,
                "updated_at": now,
            }
        )
        await self._store.update(document_path(BLOG_POSTS, post_id), stored.to_document())
        logger.info("Blog post updated id=%s", post_id)
        return stored

    async def delete_post(self, post_id: str) -> None:
        await self._load_post(post_id)
        await self._store.delete(document_path(BLOG_POSTS, post_id))
        logger.info("Blog post deleted id=%s", post_id)

    # --- comments ---

    async def list_comments(self, post_id: str) -> list[BlogComment]:
        docs = await self._store.query(
            BLOG_COMMENTS,
            where=[FieldFilter("postId", "==", post_id)],
            order_by="createdAt",
        )
        return [BlogComment.from_document(d) for d in docs]

    async def add_comment(self, post_id: str, user: Principal, text: str) -> BlogComment:
        if not text or not text.strip():
            raise ValidationFailed("Comment text is required")
        await self.get_post(post_id)
        comment = BlogComment(
            post_id=post_id,
            user_id=user.user_id,
            user_name=user.name,
            text=text.strip(),
            created_at=self._now(),
        )
        comment_id = await self._store.add(BLOG_COMMENTS, comment.to_document())
        return comment.model_copy(update={"id": comment_id})

    async def delete_comment(self, post_id: str, comment_id: str, user: Principal) -> None:
        doc = await self._store.get(document_path(BLOG_COMMENTS, comment_id))
        if doc is None:
            raise CommentNotFound(comment_id)
        comment = BlogComment.from_document(doc)
        if comment.post_id != post_id:
            raise CommentNotFound(comment_id)
        if comment.user_id != user.user_id and not user.is_admin():
            raise PermissionDenied("Only the author or an admin can delete a comment")
        await self._store.delete(document_path(BLOG_COMMENTS, comment_id))

    # --- announcements ---

    async def list_announcements(self, limit: int | None = None) -> list[Announcement]:
        docs = await self._store.query(
            ANNOUNCEMENTS, order_by="timestamp", descending=True, limit=limit
        )
        return [Announcement.from_document(d) for d in docs]

    async def latest_announcement(self) -> Announcement | None:
        latest = await self.list_announcements(limit=1)
        return latest[0] if latest else None

    async def create_announcement(self, text: str, author: Principal) -> Announcement:
        if not text or not text.strip():
            raise ValidationFailed("Announcement text is required")
        announcement = Announcement(
            text=text.strip(),
            timestamp=self._now(),
            created_by=author.email or author.user_id,
        )
        announcement_id = await self._store.add(ANNOUNCEMENTS, announcement.to_document())
        logger.info("Announcement created id=%s", announcement_id)
        return announcement.model_copy(update={"id": announcement_id})
