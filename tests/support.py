"""Builders shared by the test modules.

Kept out of conftest so test modules can import them directly.
"""

from __future__ import annotations

import re
from typing import Any

import httpx

from lms.core.config import Settings
from lms.models.course import Course
from lms.repos.account_repo import InMemoryAccountRepo
from lms.services import token_service
from lms.services.cache import InMemoryCacheService
from lms.services.container import Services, assemble
from lms.services.identity import LocalIdentityProvider
from lms.services.image_host import InMemoryImageHost
from lms.services.mailer import OutboxMailer
from lms.stores.document_store import DocumentStore, InMemoryDocumentStore

TEST_SETTINGS = Settings(
    app_env="test",
    log_level="warning",
    log_json=False,
    port=8000,
    redis_url=None,
    news_api_key="test-key",
)

# Two modules, three sub-units: 1/3 -> 33%, 2/3 -> 67%.
SAMPLE_COURSE: dict[str, Any] = {
    "title": "Introduction to Data Science",
    "description": "Foundations of working with data.",
    "category": "Data",
    "type": "certification",
    "status": "available",
    "modules": [
        {
            "id": "m1",
            "title": "Basics",
            "subCourses": [
                {"id": "s1", "title": "What is data?"},
                {"id": "s2", "title": "Tables"},
            ],
        },
        {
            "id": "m2",
            "title": "Statistics",
            "subCourses": [{"id": "s1", "title": "Averages"}],
        },
    ],
}

ALL_UNITS = (("m1", "s1"), ("m1", "s2"), ("m2", "s1"))

# The same course after a fourth sub-unit is added to m2.
FOUR_UNIT_MODULES: list[dict[str, Any]] = [
    SAMPLE_COURSE["modules"][0],
    {
        "id": "m2",
        "title": "Statistics",
        "subCourses": [
            {"id": "s1", "title": "Averages"},
            {"id": "s2", "title": "Spread"},
        ],
    },
]


def news_payload(*urls: str) -> dict[str, Any]:
    return {
        "status": "ok",
        "articles": [
            {
                "title": f"Scholarship news {i}",
                "description": "New scholarship for students in Nigeria",
                "url": url,
                "urlToImage": None,
                "author": None,
                "publishedAt": "2024-05-01T09:00:00Z",
                "source": {"name": "Daily"},
            }
            for i, url in enumerate(urls)
        ],
    }


def default_http_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "newsapi.org":
        return httpx.Response(200, json=news_payload("https://news.example/a"))
    return httpx.Response(404, json={"error": {"message": "not mocked"}})


def build_test_services(handler=default_http_handler) -> Services:
    cache = InMemoryCacheService()
    mailer = OutboxMailer()
    return assemble(
        TEST_SETTINGS,
        store=InMemoryDocumentStore(),
        cache=cache,
        identity=LocalIdentityProvider(
            InMemoryAccountRepo(), cache, mailer, TEST_SETTINGS.password_reset_url
        ),
        http=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        image_host=InMemoryImageHost(),
        mailer=mailer,
    )


async def seed_course(
    store: DocumentStore, course_id: str = "ds-101", **overrides: Any
) -> Course:
    data = {**SAMPLE_COURSE, **overrides}
    await store.set(f"courses/{course_id}", data)
    return Course.model_validate({**data, "id": course_id})


def mint_token(
    user_id: str = "test-user",
    roles: list[str] | None = None,
    email: str = "learner@example.com",
    name: str = "Ada Learner",
) -> str:
    """Create a valid ES256 ID token for the local identity provider."""
    return token_service.create_id_token(
        sub=user_id, email=email, name=name, roles=roles
    )


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def reset_token_in(body: str) -> str:
    """Pull the reset token out of a password-reset email body."""
    match = re.search(r"[?&]token=([\w.-]+)", body)
    assert match is not None, body
    return match.group(1)
