from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from lms.core.errors import PermissionDenied, ValidationFailed
from lms.models.blog import BlogPost
from lms.models.principal import Principal
from lms.services.blog import BlogService, CommentNotFound, PostNotFound, convert_drive_link
from lms.stores.document_store import InMemoryDocumentStore

READER = Principal(user_id="u1", email="reader@example.com", display_name="Reader")
OTHER = Principal(user_id="u2", email="other@example.com")
ADMIN = Principal(user_id="a1", email="admin@example.com", roles=frozenset({"user", "admin"}))


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 9, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture
def blog() -> BlogService:
    return BlogService(InMemoryDocumentStore(), clock=_Clock())


@pytest.mark.parametrize(
    ("link", "expected"),
    [
        (
            "https://drive.google.com/file/d/abc123/view?usp=sharing",
            "https://drive.google.com/uc?export=view&id=abc123",
        ),
        (
            "https://drive.google.com/open?id=xyz789",
            "https://drive.google.com/uc?export=view&id=xyz789",
        ),
        ("https://drive.google.com/drive/folders", "https://drive.google.com/drive/folders"),
        ("https://cdn.example/a.png", "https://cdn.example/a.png"),
        ("", ""),
    ],
)
def test_convert_drive_link(link: str, expected: str) -> None:
    assert convert_drive_link(link) == expected


def test_create_post_forces_admin_author_and_converts_image(blog) -> None:
    post = asyncio.run(
        blog.create_post(
            BlogPost(
                title="Welcome",
                status="published",
                author="Someone Else",
                image="https://drive.google.com/file/d/img1/view",
            )
        )
    )
    assert post.id
    assert post.author == "Admin"
    assert post.image == "https://drive.google.com/uc?export=view&id=img1"
    assert post.published_at == post.updated_at


def test_blank_title_rejected(blog) -> None:
    with pytest.raises(ValidationFailed):
        asyncio.run(blog.create_post(BlogPost(title="  ")))


def test_drafts_hidden_from_readers(blog) -> None:
    draft = asyncio.run(blog.create_post(BlogPost(title="Draft")))
    published = asyncio.run(blog.create_post(BlogPost(title="Live", status="published")))

    assert [p.id for p in asyncio.run(blog.list_published())] == [published.id]
    assert len(asyncio.run(blog.list_posts())) == 2
    with pytest.raises(PostNotFound):
        asyncio.run(blog.get_post(draft.id))
    assert asyncio.run(blog.get_post(draft.id, include_drafts=True)).title == "Draft"


def test_published_posts_newest_first(blog) -> None:
    first = asyncio.run(blog.create_post(BlogPost(title="One", status="published")))
    second = asyncio.run(blog.create_post(BlogPost(title="Two", status="published")))
    assert [p.id for p in asyncio.run(blog.list_published(limit=5))] == [second.id, first.id]


def test_update_keeps_published_at(blog) -> None:
    post = asyncio.run(blog.create_post(BlogPost(title="One", status="published")))
    updated = asyncio.run(
        blog.update_post(post.id, BlogPost(title="One, revised", status="published"))
    )
    assert updated.published_at == post.published_at
    assert updated.updated_at > post.updated_at
    assert asyncio.run(blog.get_post(post.id)).title == "One, revised"


def test_delete_post(blog) -> None:
    post = asyncio.run(blog.create_post(BlogPost(title="Gone")))
    asyncio.run(blog.delete_post(post.id))
    with pytest.raises(PostNotFound):
        asyncio.run(blog.delete_post(post.id))


def test_comments_lifecycle(blog) -> None:
    post = asyncio.run(blog.create_post(BlogPost(title="Live", status="published")))
    comment = asyncio.run(blog.add_comment(post.id, READER, "  Great read  "))
    assert comment.text == "Great read"
    assert comment.user_name == "Reader"
    assert [c.id for c in asyncio.run(blog.list_comments(post.id))] == [comment.id]

    with pytest.raises(PermissionDenied):
        asyncio.run(blog.delete_comment(post.id, comment.id, OTHER))
    with pytest.raises(CommentNotFound):
        asyncio.run(blog.delete_comment("other-post", comment.id, READER))

    asyncio.run(blog.delete_comment(post.id, comment.id, ADMIN))
    assert asyncio.run(blog.list_comments(post.id)) == []


def test_comments_need_text_and_a_published_post(blog) -> None:
    draft = asyncio.run(blog.create_post(BlogPost(title="Draft")))
    with pytest.raises(ValidationFailed):
        asyncio.run(blog.add_comment(draft.id, READER, "   "))
    with pytest.raises(PostNotFound):
        asyncio.run(blog.add_comment(draft.id, READER, "hello"))


def test_announcements_latest_first(blog) -> None:
    assert asyncio.run(blog.latest_announcement()) is None
    asyncio.run(blog.create_announcement("Term starts Monday", ADMIN))
    asyncio.run(blog.create_announcement("Exams moved", ADMIN))

    latest = asyncio.run(blog.latest_announcement())
    assert latest.text == "Exams moved"
    assert latest.created_by == "admin@example.com"
    assert [a.text for a in asyncio.run(blog.list_announcements())] == [
        "Exams moved",
        "Term starts Monday",
    ]
    with pytest.raises(ValidationFailed):
        asyncio.run(blog.create_announcement(" ", ADMIN))
