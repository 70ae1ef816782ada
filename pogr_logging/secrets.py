"""Credential lookup via OS keyring with environment fallback."""

import logging
import os
from typing import Mapping

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)
SERVICE_NAME = "pogr"


def get_secret(name: str, environ: Mapping[str, str] | None = None) -> str | None:
    """Resolve secret: keyring -> environ (os.environ by default).

    Credentials are stored under the "pogr" keyring service with the same
    names as their environment variables (POGR_ACCESS, POGR_SECRET).
    """
    try:
        value = keyring.get_password(SERVICE_NAME, name)
        if value:
            return value
    except KeyringError:
        logger.debug("keyring lookup failed for %s, falling back to env", name)
    env = os.environ if environ is None else environ
    return env.get(name)
