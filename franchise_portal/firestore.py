import logging

import firebase_admin
from firebase_admin import credentials, firestore

from .config import FIREBASE_PROJECT_ID

logger = logging.getLogger(__name__)

# Firestore collection names
TEMPLATES = "emailTemplates"
LOCATIONS = "locations"
BOOKINGS = "bookings"
INVITES = "invites"
ENQUIRIES = "enquiries"
SESSIONS = "sessions"
PARENTS = "parents"
USERS = "users"
SALES = "sales"
TRANSACTIONS = "transactions"
PUSH_BROADCASTS = "pushBroadcasts"


def get_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    try:
        cred = credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
        logger.info("Firebase Admin initialized with default credentials")
    except Exception:
        app = firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
        logger.info("Firebase Admin initialized with project ID only")
    return app


def get_db():
    """FastAPI dependency returning the Firestore client"""
    return firestore.client(app=get_firebase_app())
