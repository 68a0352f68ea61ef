"""Firestore client construction through the Firebase Admin SDK."""

import os
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)


def create_firestore_client(
    credentials_path: Optional[str] = None,
    project_id: Optional[str] = None
):
    """
    Initialize the Firebase Admin app (once) and return a Firestore client.

    Args:
        credentials_path: Service account JSON; application default
            credentials are used when omitted
        project_id: Project to connect to, overriding the credentials' project

    Returns:
        google.cloud.firestore.Client

    Raises:
        ValueError: If the credentials file does not exist
    """
    if not firebase_admin._apps:
        options = {"projectId": project_id} if project_id else None

        if credentials_path:
            if not os.path.exists(credentials_path):
                raise ValueError(f"Firebase credentials not found at: {credentials_path}")
            cred = credentials.Certificate(credentials_path)
            logger.info(f"Initializing Firebase with service account {credentials_path}")
        else:
            cred = credentials.ApplicationDefault()
            logger.info("Initializing Firebase with application default credentials")

        firebase_admin.initialize_app(cred, options)

    return firestore.client()
