"""Education news from NewsAPI (newsapi.org).

The blog page mixes staff posts with third-party articles.  The feed runs
three fixed queries, removes duplicate urls and keeps the result for three
days under ``newsCache``.  If NewsAPI is down the last cached feed is
served; with nothing cached the caller gets NewsUnavailable.

Search and top headlines are never cached and degrade to an empty list.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from lms.core.errors import UpstreamError
from lms.core.metrics import NEWS_FETCHES
from lms.models.blog import NewsArticle, NewsSource
from lms.services.cache import KeyedCache

logger = logging.getLogger(__name__)

CACHE_KEY = "newsCache"
CACHE_TTL_SECONDS = 3 * 24 * 60 * 60
# Last good feed, served when a refresh fails after the TTL has lapsed.
FALLBACK_KEY = "newsCache:lastGood"
FALLBACK_TTL_SECONDS = 30 * 24 * 60 * 60

DEFAULT_IMAGE = "/images/default-blog-image.jpg"
DEFAULT_AUTHOR = "News Staff"

FEED_QUERIES = (
    '(education AND (Nigeria OR "West Africa" OR Africa))',
    '(scholarship AND (Nigeria OR Africa OR "West Africa"))',
    "(STEM AND education AND Africa)",
)

# First match wins.
_CATEGORY_RULES = (
    (("scholarship",), "Scholarships"),
    (("stem",), "STEM"),
    (("technology",), "Education Technology"),
    (("nigeria",), "Nigerian Education"),
    (("university", "college"), "Higher Education"),
)
_TAG_RULES = (
    ("scholarship", "Scholarships"),
    ("stem", "STEM"),
    ("technology", "Technology"),
    ("nigeria", "Nigeria"),
    ("africa", "Africa"),
    ("university", "Higher Education"),
)


class NewsUnavailable(UpstreamError):
    def __init__(self) -> None:
        super().__init__("Failed to fetch news and no cache available")


def _text(title: str | None, description: str | None) -> str:
    return f"{title or ''} {description or ''}".lower()


def determine_category(title: str | None, description: str | None) -> str:
    text = _text(title, description)
    for keywords, category in _CATEGORY_RULES:
        if any(k in text for k in keywords):
            return category
    return "Education News"


def generate_tags(title: str | None, description: str | None) -> list[str]:
    text = _text(title, description)
    return ["Education"] + [tag for keyword, tag in _TAG_RULES if keyword in text]


def transform_article(
    raw: dict[str, Any],
    *,
    category: str | None = None,
    tags: list[str] | None = None,
) -> NewsArticle:
    title = raw.get("title")
    description = raw.get("description")
    source = raw.get("source") or {}
    return NewsArticle(
        id=raw["url"],
        title=title or "",
        content=description,
        excerpt=description,
        image=raw.get("urlToImage") or DEFAULT_IMAGE,
        author=raw.get("author") or DEFAULT_AUTHOR,
        published_at=raw.get("publishedAt"),
        source=NewsSource(name=source.get("name") or "", type="api"),
        url=raw["url"],
        category=category or determine_category(title, description),
        tags=tags if tags is not None else generate_tags(title, description),
    )


class NewsService:
    def __init__(
        self,
        http: httpx.AsyncClient,
        cache: KeyedCache,
        api_key: str,
        base_url: str = "https://newsapi.org/v2",
        ttl_seconds: int = CACHE_TTL_SECONDS,
    ) -> None:
        self._http = http
        self._cache = cache
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._ttl = ttl_seconds

    async def _articles(self, endpoint: str, params: dict[str, Any]) -> list[dict]:
        url = f"{self._base_url}/{endpoint}"
        try:
            # The key never goes in the url.
            response = await self._http.get(
                url, params=params, headers={"X-Api-Key": self._api_key}
            )
            response.raise_for_status()
            articles = response.json()["articles"]
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"News API response error: {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"News API request failed: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamError("News API returned an unexpected body") from e
        return [a for a in articles if isinstance(a, dict) and a.get("url")]

    async def _fetch_feed(self) -> list[dict[str, Any]]:
        by_url: dict[str, dict] = {}
        for query in FEED_QUERIES:
            for raw in await self._articles(
                "everything",
                {"q": query, "language": "en", "sortBy": "publishedAt", "pageSize": 10},
            ):
                by_url[raw["url"]] = raw
        NEWS_FETCHES.labels(source="api").inc()
        logger.info("Fetched education news articles=%d", len(by_url))
        articles = [
            transform_article(raw).model_dump(by_alias=True) for raw in by_url.values()
        ]
        await self._cache.put(FALLBACK_KEY, articles, FALLBACK_TTL_SECONDS)
        return articles

    async def fetch_education_news(self) -> list[NewsArticle]:
        try:
            data = await self._cache.get_or_fetch(CACHE_KEY, self._fetch_feed, self._ttl)
        except UpstreamError as e:
            logger.error("Error fetching news: %s", e.message)
            data = await self._cache.peek(FALLBACK_KEY)
            if data is None:
                raise NewsUnavailable() from e
            NEWS_FETCHES.labels(source="cache").inc()
        return [NewsArticle.model_validate(item) for item in data]

    async def search_news(self, query: str) -> list[NewsArticle]:
        try:
            raw = await self._articles(
                "everything",
                {
                    "q": f"{query} AND (education OR scholarship)",
                    "language": "en",
                    "sortBy": "publishedAt",
                    "pageSize": 20,
                },
            )
        except UpstreamError as e:
            logger.error("Error searching news: %s", e.message)
            return []
        return [transform_article(a) for a in raw]

    async def fetch_top_news(self) -> list[NewsArticle]:
        try:
            raw = await self._articles(
                "top-headlines",
                {"category": "general", "q": "education", "language": "en", "pageSize": 5},
            )
        except UpstreamError as e:
            logger.error("Error fetching top news: %s", e.message)
            return []
        return [
            transform_article(
                a, category="Top Education News", tags=["Education", "Featured"]
            )
            for a in raw
        ]

    async def clear_cache(self) -> None:
        await self._cache.invalidate(CACHE_KEY)
        await self._cache.invalidate(FALLBACK_KEY)
        logger.info("News cache cleared")
