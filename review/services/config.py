"""
Core configuration service for Redline.

This module is the single reader of the relay's Django settings:
- Upstream endpoint, timeouts and the fallback API key
- Default model and per-model input length limits
- Where the command-line client keeps a remembered API key

Credentials are passed around explicitly after this point; the relay itself
never reads settings or environment variables.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from django.conf import settings

from .exceptions import ServiceNotConfigured

logger = logging.getLogger(__name__)


DEFAULT_API_BASE = "https://api.openai.com/v1/"
DEFAULT_TIMEOUT = 60.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_MAX_INPUT_LENGTH = 12000
DEFAULT_CREDENTIAL_FILE = "~/.config/redline/api_key"


@dataclass(frozen=True)
class OpenAIConfiguration:
    """Settings for the upstream chat-completions API."""
    api_base: str
    api_key: str
    organization_id: str
    timeout: float
    connect_timeout: float


def get_openai_config() -> OpenAIConfiguration:
    """
    Load the upstream API configuration from Django settings.

    Returns:
        OpenAIConfiguration with defaults filled in for unset values
    """
    api_base = getattr(settings, 'OPENAI_API_BASE', '') or DEFAULT_API_BASE
    if not api_base.endswith('/'):
        api_base += '/'

    return OpenAIConfiguration(
        api_base=api_base,
        api_key=getattr(settings, 'OPENAI_API_KEY', '') or '',
        organization_id=getattr(settings, 'OPENAI_ORGANIZATION_ID', '') or '',
        timeout=float(getattr(settings, 'OPENAI_TIMEOUT', DEFAULT_TIMEOUT)),
        connect_timeout=float(getattr(settings, 'OPENAI_CONNECT_TIMEOUT', DEFAULT_CONNECT_TIMEOUT)),
    )


def resolve_api_key(credential: Optional[str] = None) -> str:
    """
    Pick the API key for one request.

    The caller's credential wins; otherwise the configured fallback secret
    is used.

    Args:
        credential: Optional key supplied with the review request

    Returns:
        The API key to send upstream

    Raises:
        ServiceNotConfigured: If neither a credential nor a fallback key exists
    """
    if credential and credential.strip():
        return credential.strip()

    fallback = get_openai_config().api_key
    if not fallback:
        raise ServiceNotConfigured(
            "No API key supplied and OPENAI_API_KEY is not configured"
        )
    return fallback


def get_default_model() -> str:
    """Return the model used when a request does not name one."""
    return getattr(settings, 'REVIEW_DEFAULT_MODEL', '') or DEFAULT_MODEL


def get_max_input_length(model_id: Optional[str] = None) -> int:
    """
    Return the maximum input length in characters for a model tier.

    Models missing from REVIEW_MAX_INPUT_LENGTHS get
    REVIEW_DEFAULT_MAX_INPUT_LENGTH.
    """
    limits = getattr(settings, 'REVIEW_MAX_INPUT_LENGTHS', {}) or {}
    model_id = model_id or get_default_model()
    if model_id in limits:
        return int(limits[model_id])
    return int(getattr(settings, 'REVIEW_DEFAULT_MAX_INPUT_LENGTH', DEFAULT_MAX_INPUT_LENGTH))


def get_credential_file() -> Path:
    """Return the file the command-line client remembers its API key in."""
    path = getattr(settings, 'REVIEW_CREDENTIAL_FILE', '') or DEFAULT_CREDENTIAL_FILE
    return Path(path).expanduser()


def load_saved_credential() -> Optional[str]:
    """
    Return the remembered API key, or None if none was saved.

    An unreadable file counts as no saved key.
    """
    path = get_credential_file()
    try:
        credential = path.read_text(encoding='utf-8').strip()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning(f"Could not read saved credential {path}: {e.__class__.__name__}")
        return None
    return credential or None


def save_credential(credential: str) -> Path:
    """
    Remember an API key for later sessions.

    The file is created readable by its owner only.

    Returns:
        Path of the credential file

    Raises:
        ValueError: If the credential is blank
    """
    credential = (credential or '').strip()
    if not credential:
        raise ValueError("Cannot save an empty API key")

    path = get_credential_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8') as f:
        f.write(credential)
    logger.info(f"Saved API key to {path}")
    return path


def forget_credential() -> bool:
    """Delete the remembered API key; returns False if there was none."""
    path = get_credential_file()
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.info(f"Removed saved API key {path}")
    return True
