"""Service-account authentication for the Google Drive API."""

from __future__ import annotations

import base64
import binascii
import json
import logging

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import Resource, build

from telegram_notes.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]


def load_service_account(credentials_b64: str) -> Credentials:
    """Build service-account credentials from a base64-encoded JSON key.

    Args:
        credentials_b64: Base64 of the service-account key file contents.

    Returns:
        Google service-account credentials scoped for Drive.

    Raises:
        AuthenticationError: If the blob cannot be decoded or is not a valid key.
    """
    try:
        info = json.loads(base64.b64decode(credentials_b64, validate=True))
    except (binascii.Error, ValueError) as e:
        raise AuthenticationError(f"Invalid service-account blob: {e}") from e

    try:
        creds = Credentials.from_service_account_info(info, scopes=SCOPES)
    except (ValueError, KeyError, TypeError) as e:
        raise AuthenticationError(f"Invalid service-account key: {e}") from e

    logger.info("Loaded service account %s", info.get("client_email", "?"))
    return creds


def build_drive_service(creds: Credentials) -> Resource:
    """Build a Drive v3 service resource."""
    return build("drive", "v3", credentials=creds, cache_discovery=False)
