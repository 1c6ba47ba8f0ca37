"""Service container.

Every remote handle (document store, identity provider, cache, HTTP
client) is built once here and passed to the services that need it.  The
FastAPI app receives the finished container, and tests build one from
in-memory parts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from lms.core.config import Settings
from lms.db.firebase import firestore_client, init_firebase, shutdown_firebase
from lms.db.redis import create_redis
from lms.repos.account_repo import InMemoryAccountRepo
from lms.services.blog import BlogService
from lms.services.cache import (
    CacheService,
    InMemoryCacheService,
    KeyedCache,
    RedisCacheService,
)
from lms.services.certificates import CertificateService
from lms.services.courses import CourseService
from lms.services.identity import (
    FirebaseIdentityProvider,
    IdentityProvider,
    LocalIdentityProvider,
)
from lms.services.image_host import CloudinaryImageHost, ImageHost, InMemoryImageHost
from lms.services.leaderboard import LeaderboardService
from lms.services.mailer import Mailer, OutboxMailer, SmtpMailer
from lms.services.news import NewsService
from lms.services.progress import ProgressService
from lms.services.questions import QuestionBankService
from lms.services.users import UserService
from lms.stores.document_store import DocumentStore, InMemoryDocumentStore
from lms.stores.firestore_store import FirestoreDocumentStore

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 10.0


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    cache: CacheService
    identity: IdentityProvider
    http: httpx.AsyncClient
    image_host: ImageHost
    mailer: Mailer
    courses: CourseService
    progress: ProgressService
    certificates: CertificateService
    questions: QuestionBankService
    blog: BlogService
    news: NewsService
    leaderboard: LeaderboardService
    users: UserService
    redis: Any = None
    firebase_app: Any = None

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.store.aclose()
        if self.firebase_app is not None:
            shutdown_firebase(self.firebase_app)


def assemble(
    settings: Settings,
    *,
    store: DocumentStore,
    cache: CacheService,
    identity: IdentityProvider,
    http: httpx.AsyncClient,
    image_host: ImageHost,
    mailer: Mailer,
    redis: Any = None,
    firebase_app: Any = None,
) -> Services:
    """Wire the domain services on top of already-built handles."""
    courses = CourseService(store)
    return Services(
        settings=settings,
        store=store,
        cache=cache,
        identity=identity,
        http=http,
        image_host=image_host,
        mailer=mailer,
        courses=courses,
        progress=ProgressService(store, courses),
        certificates=CertificateService(store, courses),
        questions=QuestionBankService(store),
        blog=BlogService(store),
        news=NewsService(
            http,
            KeyedCache(cache),
            api_key=settings.news_api_key or "",
            base_url=settings.news_api_url,
            ttl_seconds=settings.news_cache_ttl_seconds,
        ),
        leaderboard=LeaderboardService(store),
        users=UserService(store),
        redis=redis,
        firebase_app=firebase_app,
    )


def build_services(settings: Settings) -> Services:
    firebase_app = None
    if settings.document_store == "firestore" or settings.identity_provider == "firebase":
        firebase_app = init_firebase(settings)

    store: DocumentStore
    if settings.document_store == "firestore":
        store = FirestoreDocumentStore(firestore_client(firebase_app))
    else:
        store = InMemoryDocumentStore()

    redis_client = create_redis(settings.redis_url)
    cache: CacheService = (
        RedisCacheService(redis_client) if redis_client is not None else InMemoryCacheService()
    )

    mailer: Mailer
    if settings.smtp_host:
        mailer = SmtpMailer(
            settings.smtp_host,
            settings.smtp_port,
            settings.mail_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
        )
    else:
        mailer = OutboxMailer()

    identity: IdentityProvider
    if settings.identity_provider == "firebase":
        identity = FirebaseIdentityProvider(firebase_app, mailer, store)
    else:
        identity = LocalIdentityProvider(
            InMemoryAccountRepo(), cache, mailer, settings.password_reset_url
        )

    http = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    image_host: ImageHost
    if settings.cloudinary_cloud_name:
        image_host = CloudinaryImageHost(
            http, settings.cloudinary_cloud_name, settings.cloudinary_upload_preset
        )
    else:
        image_host = InMemoryImageHost()

    logger.info(
        "Services built store=%s identity=%s cache=%s images=%s mail=%s",
        settings.document_store,
        settings.identity_provider,
        "redis" if redis_client is not None else "memory",
        "cloudinary" if settings.cloudinary_cloud_name else "memory",
        "smtp" if settings.smtp_host else "outbox",
    )
    return assemble(
        settings,
        store=store,
        cache=cache,
        identity=identity,
        http=http,
        image_host=image_host,
        mailer=mailer,
        redis=redis_client,
        firebase_app=firebase_app,
    )
