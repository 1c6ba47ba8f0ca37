"""Cookie consent preferences.

The record lives with the browser, not in the document store: a string
key/value storage holds it as JSON under ``cookieConsent``.  The API hands
the request's cookie jar in as that storage and writes it back on the
response.

Essential cookies cannot be refused.  Every write forces
``preferences.essential`` to true, and ``toggle("essential")`` does nothing.
"""

from __future__ import annotations

import json
import logging
from collections.abc import MutableMapping
from dataclasses import dataclass

from pydantic import ValidationError

from lms.core.errors import ValidationFailed
from lms.models.base import iso_timestamp, utc_now
from lms.models.consent import (
    OPTIONAL_COOKIE_KINDS,
    ConsentRecord,
    CookieKind,
    CookiePreferences,
)
from lms.services.progress import Clock

logger = logging.getLogger(__name__)

CONSENT_KEY = "cookieConsent"
TRACKING_COOKIE_DAYS = 365

_KINDS = ("essential", *OPTIONAL_COOKIE_KINDS)


@dataclass(frozen=True, slots=True)
class TrackingCookie:
    name: str
    value: str = "true"
    max_age_days: int = TRACKING_COOKIE_DAYS

    @property
    def max_age_seconds(self) -> int:
        return self.max_age_days * 24 * 60 * 60


class ConsentStore:
    def __init__(
        self,
        storage: MutableMapping[str, str],
        clock: Clock = utc_now,
    ) -> None:
        self._storage = storage
        self._clock = clock

    def get(self) -> ConsentRecord | None:
        raw = self._storage.get(CONSENT_KEY)
        if not raw:
            return None
        try:
            return ConsentRecord.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            # An unreadable record counts as no answer; the banner asks again.
            logger.warning("Ignoring malformed %s value", CONSENT_KEY)
            return None

    def has_consent(self) -> bool:
        record = self.get()
        return record is not None and record.accepted

    def preferences(self) -> CookiePreferences:
        record = self.get()
        return record.preferences if record is not None else CookiePreferences()

    def update(self, preferences: CookiePreferences) -> ConsentRecord:
        record = ConsentRecord(
            accepted=True,
            preferences=preferences.model_copy(update={"essential": True}),
            timestamp=iso_timestamp(self._clock()),
        )
        self._storage[CONSENT_KEY] = record.model_dump_json(by_alias=True)
        return record

    def accept_all(self) -> ConsentRecord:
        return self.update(CookiePreferences.all_allowed())

    def decline_all(self) -> ConsentRecord:
        return self.update(CookiePreferences.minimal())

    def toggle(self, kind: CookieKind) -> ConsentRecord:
        if kind not in _KINDS:
            raise ValidationFailed(f"Unknown cookie category: {kind}")
        current = self.preferences()
        if kind == "essential":
            return self.update(current)
        return self.update(
            current.model_copy(update={kind: not getattr(current, kind)})
        )

    def is_allowed(self, kind: CookieKind) -> bool:
        record = self.get()
        if record is None:
            return False
        if kind == "essential":
            return True
        return bool(getattr(record.preferences, kind, False))

    def tracking_cookies(self) -> list[TrackingCookie]:
        """Cookies the browser should hold for the stored preferences.

        Nothing is set until the visitor has answered the banner.
        """
        record = self.get()
        if record is None:
            return []
        cookies = [TrackingCookie("essential_cookie")]
        for kind in OPTIONAL_COOKIE_KINDS:
            if getattr(record.preferences, kind):
                cookies.append(TrackingCookie(f"{kind}_cookie"))
        return cookies
