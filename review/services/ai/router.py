"""
AI Router - Main entry point for AI services in Redline.
"""

import logging
from typing import List, Dict, Optional

from review.services import config as config_service
from review.services.exceptions import ServiceNotConfigured
from .base_provider import BaseProvider
from .openai_provider import OpenAIProvider
from .prompts import build_review_prompt
from .relay import RelayStream
from .schemas import ReviewRequest

logger = logging.getLogger(__name__)


class AIRouter:
    """
    AI Router for the review relay.

    Resolves the credential for each request and hands the call to the
    configured provider. Each call opens exactly one upstream stream.
    """

    # Provider class mapping
    PROVIDER_CLASSES = {
        'OpenAI': OpenAIProvider,
    }

    def __init__(self, provider_type: str = 'OpenAI', **provider_kwargs):
        """
        Initialize the AI Router.

        Args:
            provider_type: Key into PROVIDER_CLASSES
            **provider_kwargs: Passed to the provider constructor (e.g. transport)
        """
        self.provider_type = provider_type
        self.provider_kwargs = provider_kwargs

    def _get_provider_instance(self, api_key: str) -> BaseProvider:
        """
        Create a provider instance for one request.

        Raises:
            ServiceNotConfigured: If provider type is not supported
        """
        provider_class = self.PROVIDER_CLASSES.get(self.provider_type)

        if not provider_class:
            raise ServiceNotConfigured(
                f"Provider type '{self.provider_type}' is not supported"
            )

        return provider_class(api_key=api_key, **self.provider_kwargs)

    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model_id: str,
        credential: Optional[str] = None,
        temperature: Optional[float] = 0,
        **kwargs
    ) -> RelayStream:
        """
        Open a streamed chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model_id: Model identifier
            credential: Caller-supplied API key; falls back to OPENAI_API_KEY
            temperature: Sampling temperature (0 by default)
            **kwargs: Additional provider-specific parameters

        Returns:
            RelayStream of text fragments

        Raises:
            ServiceNotConfigured: If no API key is available
        """
        api_key = config_service.resolve_api_key(credential)
        provider = self._get_provider_instance(api_key)

        logger.debug(
            f"Streaming chat via {provider.provider_type} "
            f"(model={model_id}, caller_key={'yes' if credential else 'no'})"
        )
        return provider.stream_chat(
            messages=messages,
            model_id=model_id,
            temperature=temperature,
            **kwargs
        )

    def stream_review(self, request: ReviewRequest) -> RelayStream:
        """
        Start the review of one request.

        The review prompt goes out as a single system message with
        temperature 0.
        """
        prompt = build_review_prompt(request.input_text)
        messages = [{'role': 'system', 'content': prompt}]

        return self.stream_chat(
            messages=messages,
            model_id=request.model_id,
            credential=request.credential,
            temperature=0,
        )
