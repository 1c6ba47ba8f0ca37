"""Firebase Admin SDK initialisation.

One named Firebase app is created per service container.  Both the
Firestore document store and the Firebase identity provider hang off it,
so there is a single credential and a single place to tear it down.

FIREBASE_CREDENTIALS points at a service-account JSON file.  When it is
unset, Application Default Credentials are used (the normal case on
Google Cloud runtimes).
"""

from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials, firestore_async

from lms.core.config import Settings

logger = logging.getLogger(__name__)

_APP_NAME = "learning-service"


def init_firebase(settings: Settings) -> firebase_admin.App:
    try:
        return firebase_admin.get_app(_APP_NAME)
    except ValueError:
        pass

    if settings.firebase_credentials:
        cred: credentials.Base = credentials.Certificate(settings.firebase_credentials)
    else:
        cred = credentials.ApplicationDefault()

    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id

    app = firebase_admin.initialize_app(cred, options, name=_APP_NAME)
    logger.info("Firebase app initialised  project=%s", app.project_id)
    return app


def firestore_client(app: firebase_admin.App):
    return firestore_async.client(app)


def shutdown_firebase(app: firebase_admin.App) -> None:
    firebase_admin.delete_app(app)
    logger.info("Firebase app deleted")
