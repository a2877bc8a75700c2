from typing import Optional

from google.cloud import firestore
from google.oauth2 import service_account

from utils.logging import get_logger

logger = get_logger(__name__)


def create_firestore_client(creds_path: Optional[str] = None) -> Optional[firestore.Client]:
    """
    Firestore client from a service account file, or from the default
    credentials when no path is given. None when initialisation fails.
    """
    try:
        if creds_path:
            credentials = service_account.Credentials.from_service_account_file(creds_path)
            return firestore.Client(credentials=credentials, project=credentials.project_id)
        return firestore.Client()
    except Exception as e:
        logger.error("Firestore init failed", extra={"error": str(e)})
        return None
