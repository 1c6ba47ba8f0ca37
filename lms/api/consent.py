"""Cookie consent endpoints.

The consent record stays in the browser.  Each request rebuilds a
ConsentStore over the ``cookieConsent`` cookie, and any change is written
back as a Set-Cookie together with the tracking cookies the visitor now
allows.
"""

from __future__ import annotations

from urllib.parse import quote, unquote

from fastapi import APIRouter, Request, Response

from lms.api.schemas import CamelModel
from lms.models.consent import ConsentRecord, CookieKind, CookiePreferences
from lms.services.consent import CONSENT_KEY, TRACKING_COOKIE_DAYS, ConsentStore

router = APIRouter(prefix="/v1/consent", tags=["consent"])

_CONSENT_MAX_AGE = TRACKING_COOKIE_DAYS * 24 * 60 * 60


class ConsentOut(CamelModel):
    has_consent: bool
    preferences: CookiePreferences
    consent: ConsentRecord | None = None
    cookies: list[str]


def _store(request: Request) -> ConsentStore:
    storage: dict[str, str] = {}
    raw = request.cookies.get(CONSENT_KEY)
    if raw:
        storage[CONSENT_KEY] = unquote(raw)
    return ConsentStore(storage)


def _respond(store: ConsentStore, response: Response, *, changed: bool) -> ConsentOut:
    cookies = store.tracking_cookies()
    record = store.get() if changed else None
    if record is not None:
        response.set_cookie(
            CONSENT_KEY,
            quote(record.model_dump_json(by_alias=True), safe=""),
            max_age=_CONSENT_MAX_AGE,
            path="/",
            samesite="lax",
        )
        for cookie in cookies:
            response.set_cookie(
                cookie.name,
                cookie.value,
                max_age=cookie.max_age_seconds,
                path="/",
                samesite="lax",
            )
    return ConsentOut(
        has_consent=store.has_consent(),
        preferences=store.preferences(),
        consent=store.get(),
        cookies=[c.name for c in cookies],
    )


@router.get("", response_model=ConsentOut)
async def get_consent(request: Request, response: Response) -> ConsentOut:
    store = _store(request)
    return _respond(store, response, changed=False)


@router.put("", response_model=ConsentOut)
async def update_consent(
    preferences: CookiePreferences, request: Request, response: Response
) -> ConsentOut:
    store = _store(request)
    store.update(preferences)
    return _respond(store, response, changed=True)


@router.post("/accept-all", response_model=ConsentOut)
async def accept_all(request: Request, response: Response) -> ConsentOut:
    store = _store(request)
    store.accept_all()
    return _respond(store, response, changed=True)


@router.post("/decline-all", response_model=ConsentOut)
async def decline_all(request: Request, response: Response) -> ConsentOut:
    store = _store(request)
    store.decline_all()
    return _respond(store, response, changed=True)


@router.post("/toggle/{kind}", response_model=ConsentOut)
async def toggle(kind: CookieKind, request: Request, response: Response) -> ConsentOut:
    store = _store(request)
    store.toggle(kind)
    return _respond(store, response, changed=True)
