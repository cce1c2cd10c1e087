"""Firebase Admin SDK initialization."""

import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore, storage

from aichef.config import Settings

logger = logging.getLogger(__name__)


def init_firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {"storageBucket": settings.firebase_storage_bucket} if settings.firebase_storage_bucket else None

    try:
        # Service account key file, or default credentials on Cloud Run / GCE.
        cred: Optional[credentials.Base] = None
        if settings.firebase_credentials_path:
            cred = credentials.Certificate(settings.firebase_credentials_path)
        app = firebase_admin.initialize_app(cred, options)
    except Exception as e:
        logger.error(f"Firebase Admin SDK init failed: {e}")
        raise

    logger.info("Firebase Admin SDK initialized", extra={"bucket": settings.firebase_storage_bucket})
    return app


def get_firestore_client(app: firebase_admin.App):
    """Firestore client bound to ``app``."""
    return firestore.client(app)


def get_storage_bucket(app: firebase_admin.App, name: Optional[str] = None):
    """Storage bucket; ``None`` selects the app's configured default bucket."""
    return storage.bucket(name, app=app)
