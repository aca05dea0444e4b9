"""
OpenAI provider implementation.
"""

from typing import List, Dict, Optional

import httpx

from review.services import config as config_service
from review.services.integrations import BaseIntegration, HTTPClient
from .base_provider import BaseProvider
from .relay import RelayStream


class OpenAIProvider(BaseIntegration, BaseProvider):
    """OpenAI chat-completions provider speaking the streaming protocol."""

    name = "openai"

    def __init__(self, api_key: str, transport: Optional[httpx.BaseTransport] = None, **kwargs):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (already resolved by the caller)
            transport: Optional httpx transport
            **kwargs: Additional config (organization_id, etc.)
        """
        BaseProvider.__init__(self, api_key, **kwargs)
        BaseIntegration.__init__(self)
        self.transport = transport

    @property
    def provider_type(self) -> str:
        """Return provider type."""
        return 'OpenAI'

    def _load_config(self):
        return config_service.get_openai_config()

    def _is_config_complete(self, config) -> bool:
        return bool(config.api_base)

    def _build_headers(self, config) -> Dict[str, str]:
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'text/event-stream',
            'Authorization': f'Bearer {self.api_key}',
        }

        organization_id = self.config.get('organization_id') or config.organization_id
        if organization_id:
            headers['OpenAI-Organization'] = organization_id
        return headers

    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model_id: str,
        temperature: Optional[float] = 0,
        **kwargs
    ) -> RelayStream:
        """
        Open a streamed chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model_id: OpenAI model ID (e.g., 'gpt-4', 'gpt-3.5-turbo')
            temperature: Sampling temperature
            **kwargs: Additional OpenAI parameters

        Returns:
            RelayStream over the response; the caller must exhaust or close it

        Raises:
            IntegrationNotConfigured: If the API base URL is missing
            UpstreamError: If OpenAI answers with a status other than 200
            TransportError: If OpenAI cannot be reached
        """
        config = self.require_config()

        # Build request body
        body = {
            'model': model_id,
            'messages': messages,
        }

        if temperature is not None:
            body['temperature'] = temperature

        # Add any additional kwargs
        body.update(kwargs)
        body['stream'] = True

        client = HTTPClient(
            base_url=config.api_base,
            headers=self._build_headers(config),
            timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
            service_name='OpenAI API',
            transport=self.transport,
        )

        self.logger.info(f"Opening chat completion stream (model={model_id})")
        try:
            response = client.open_stream('POST', 'chat/completions', json=body)
        except Exception:
            client.close()
            raise

        def release():
            try:
                response.close()
            finally:
                client.close()

        return RelayStream.from_response(response, on_close=release)
