"""
Integration Base Package

Provides base classes and utilities for talking to the upstream
completions provider.

Key Components:
- errors.py: Integration-specific exceptions
- base.py: BaseIntegration class with logger namespace and config checks
- http.py: HTTP client with streaming support and error mapping
"""

from .errors import (
    IntegrationError,
    IntegrationNotConfigured,
    UpstreamError,
    IntegrationAuthError,
    IntegrationRateLimited,
    IntegrationTemporaryError,
    IntegrationPermanentError,
    DecodeError,
    TransportError,
)
from .base import BaseIntegration
from .http import HTTPClient

__all__ = [
    # Exceptions
    'IntegrationError',
    'IntegrationNotConfigured',
    'UpstreamError',
    'IntegrationAuthError',
    'IntegrationRateLimited',
    'IntegrationTemporaryError',
    'IntegrationPermanentError',
    'DecodeError',
    'TransportError',
    # Classes
    'BaseIntegration',
    'HTTPClient',
]
