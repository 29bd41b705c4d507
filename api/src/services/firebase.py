"""Firebase service account bootstrap."""

import os
from pathlib import Path

import structlog

from api.src.config import Settings

logger = structlog.get_logger(__name__)

CREDENTIALS_ENV_VAR = "GOOGLE_APPLICATION_CREDENTIALS"


def configure_private_key(settings: Settings) -> None:
    """
    Export the Firebase service account path for Google client libraries.

    Resolves firebase.server_key to an absolute path and stores it in
    GOOGLE_APPLICATION_CREDENTIALS.

    Args:
        settings: Application settings
    """
    server_key = settings.firebase.server_key

    if not server_key:
        logger.warning("firebase_server_key_not_configured")
        return

    path = str(Path(server_key).resolve())
    os.environ[CREDENTIALS_ENV_VAR] = path

    logger.info("firebase_private_key_configured", path=path)
