import json
import base64
import logging
from functools import lru_cache
from firebase_admin import credentials, initialize_app, get_app, firestore
from tenantry.core.config import settings

logger = logging.getLogger("tenantry")


def init_firebase():
    try:
        get_app()
        logger.info("Firebase Admin SDK already initialized")
        return
    except ValueError:
        pass

    if settings.TENANTRY_FIREBASE_KEY:
        try:
            decoded_json = base64.b64decode(settings.TENANTRY_FIREBASE_KEY).decode("utf-8")
            service_account_info = json.loads(decoded_json)
            logger.info("Loaded Firebase credentials from TENANTRY_FIREBASE_KEY")
        except Exception as e:
            raise RuntimeError(f"Failed to decode or parse TENANTRY_FIREBASE_KEY: {e}")

        project_id = service_account_info.get("project_id")
        if not project_id:
            raise ValueError("'project_id' missing in Firebase service account JSON")

        initialize_app(credentials.Certificate(service_account_info))
        logger.info(f"Firebase Admin SDK initialized | Project: {project_id}")
        return

    if settings.GOOGLE_APPLICATION_CREDENTIALS:
        initialize_app(credentials.Certificate(settings.GOOGLE_APPLICATION_CREDENTIALS))
        logger.info("Firebase Admin SDK initialized from GOOGLE_APPLICATION_CREDENTIALS")
        return

    raise RuntimeError("Neither TENANTRY_FIREBASE_KEY nor GOOGLE_APPLICATION_CREDENTIALS is set")


@lru_cache(maxsize=1)
def get_db():
    """Firestore client, created on first use. Routes take it via Depends(get_db)."""
    init_firebase()
    client = firestore.client()
    logger.info("Firestore client ready")
    return client


__all__ = ["get_db", "init_firebase"]
