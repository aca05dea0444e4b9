"""
Shared plumbing for upstream services the relay talks to.

An integration knows where its settings come from, whether they are usable,
and which logger it reports to. Request handling lives in HTTPClient.
"""

import logging
from typing import Any

from .errors import IntegrationNotConfigured


class BaseIntegration:
    """
    Base for upstream service clients.

    Subclasses set `name`, return their settings object from `_load_config()`
    and decide in `_is_config_complete()` whether those settings are enough
    to talk to the service. Call `require_config()` before the first request.

    Example:
        class OpenAIProvider(BaseIntegration):
            name = "openai"

            def _load_config(self):
                return config_service.get_openai_config()

            def _is_config_complete(self, config):
                return bool(config.api_base)
    """

    # Short identifier, also the logger suffix
    name: str = None

    def __init__(self):
        if self.name is None:
            raise NotImplementedError(
                f"{self.__class__.__name__} has no 'name'; set it on the class"
            )

        self._logger = logging.getLogger(f"redline.integration.{self.name}")
        self._config_cache = None

    @property
    def logger(self) -> logging.Logger:
        """Logger under redline.integration.<name>."""
        return self._logger

    def _load_config(self) -> Any:
        """Read the settings object for this service."""
        raise NotImplementedError(
            f"{self.__class__.__name__}._load_config() is not implemented"
        )

    def _is_config_complete(self, config: Any) -> bool:
        """
        Tell whether `config` carries everything a request needs.

        Args:
            config: Object returned by _load_config()

        Returns:
            False when a required value is missing or blank
        """
        raise NotImplementedError(
            f"{self.__class__.__name__}._is_config_complete() is not implemented"
        )

    def get_config(self) -> Any:
        """Settings for this instance, read on first use."""
        if self._config_cache is None:
            self._config_cache = self._load_config()
        return self._config_cache

    def require_config(self) -> Any:
        """
        Settings for this instance, guaranteed complete.

        Raises:
            IntegrationNotConfigured: If settings are missing or incomplete
        """
        config = self.get_config()
        if config is None or not self._is_config_complete(config):
            raise IntegrationNotConfigured(
                f"{self.name} integration is not configured. "
                f"Check the {self.name.upper()}_* settings."
            )
        return config
