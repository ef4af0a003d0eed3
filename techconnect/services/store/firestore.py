import os
import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions

from techconnect.core.config import Settings
from techconnect.core.errors import RecordNotFoundError, StorePersistenceError

logger = logging.getLogger(__name__)

VALIDATION_STATUS_FIELD = "validationStatus"
VALIDATION_PENDING = "pending"


def init_firebase(settings: Settings) -> firebase_admin.App:
    """
    Initialize the default Firebase app from the service account file.

    Raises RuntimeError when the credentials file is missing or unreadable; the
    service cannot do its job without the store so startup should stop.
    """
    if firebase_admin._apps:  # type: ignore[attr-defined]
        return firebase_admin.get_app()

    cred_path = settings.GOOGLE_APPLICATION_CREDENTIALS
    if not cred_path or not os.path.exists(cred_path):
        raise RuntimeError(
            f"Firebase service account file not found: {cred_path!r}. "
            "Set GOOGLE_APPLICATION_CREDENTIALS to the serviceAccountKey.json path."
        )
    try:
        cred = credentials.Certificate(cred_path)
        options = {"databaseURL": settings.FIREBASE_DATABASE_URL} if settings.FIREBASE_DATABASE_URL else None
        app = firebase_admin.initialize_app(cred, options)
    except (ValueError, IOError) as e:
        raise RuntimeError(f"Unexpected error initializing Firebase: {e}") from e
    logger.info("Firebase Admin SDK initialized")
    return app


class TechnicianStore:
    """the only write the webhook pipeline makes: technicians/<id>.validationStatus."""

    def __init__(self, client: Any, collection: str = "technicians"):
        self._client = client
        self.collection = collection

    @classmethod
    def from_settings(cls, settings: Settings, app: Optional[firebase_admin.App] = None) -> "TechnicianStore":
        app = app or init_firebase(settings)
        return cls(firestore.client(app), collection=settings.TECHNICIANS_COLLECTION)

    def set_validation_status(self, technician_id: str, status: str = VALIDATION_PENDING) -> None:
        """
        Set one field on an existing technician document.

        ``update`` fails when the document is absent, so this never creates records.

        Raises:
            RecordNotFoundError: no document with this id
            StorePersistenceError: any other failure to commit the write
        """
        doc_ref = self._client.collection(self.collection).document(technician_id)
        try:
            doc_ref.update({VALIDATION_STATUS_FIELD: status})
        except gcp_exceptions.NotFound as e:
            raise RecordNotFoundError(
                f"{self.collection}/{technician_id} does not exist", record_id=technician_id
            ) from e
        except (gcp_exceptions.GoogleAPICallError, gcp_exceptions.RetryError, auth_exceptions.GoogleAuthError) as e:
            raise StorePersistenceError(
                f"failed to update {self.collection}/{technician_id}: {e}", record_id=technician_id
            ) from e

    def health_check(self) -> Dict[str, str]:
        """check Firestore integration status."""
        if self._client is None:
            return {"status": "error", "reason": "client_not_initialized"}
        return {"status": "configured", "collection": self.collection}
