# shopbati/services/firebase.py
from __future__ import annotations

import os
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore_async

from ..settings import settings


@lru_cache
def ensure_firestore():
    """
    Return an async Firestore client, initializing the Firebase app exactly once.

    Credentials come from GOOGLE_APPLICATION_CREDENTIALS when it points at a
    file, otherwise from Application Default Credentials.
    """

    if not firebase_admin._apps:
        # First-time init
        sa_path = settings.google_application_credentials or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        options = {"projectId": settings.firebase_project_id}
        try:
            if sa_path and os.path.isfile(sa_path):
                cred = credentials.Certificate(sa_path)
                firebase_admin.initialize_app(cred, options)
            else:
                firebase_admin.initialize_app(options=options)
        except ValueError:
            # initialized concurrently: "app already exists"
            pass

    return firestore_async.client()
