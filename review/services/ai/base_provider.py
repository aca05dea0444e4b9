"""
Interface every chat completion backend offers to the router.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Optional

from .relay import RelayStream


class BaseProvider(ABC):
    """A chat backend that answers with a relayed stream of text fragments."""

    def __init__(self, api_key: str, **kwargs):
        """
        Args:
            api_key: Credential sent with every request
            **kwargs: Backend specific options (transport, organization, ...)
        """
        self.api_key = api_key
        self.config = kwargs

    @property
    @abstractmethod
    def provider_type(self) -> str:
        """Name the router uses to pick this backend."""

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model_id: str,
        temperature: Optional[float] = 0,
        **kwargs
    ) -> RelayStream:
        """
        Open a streamed completion for `messages`.

        Nothing is read from the body before this returns; a non-200 answer
        raises instead of returning a stream.

        Args:
            messages: Chat messages, each a dict with 'role' and 'content'
            model_id: Model identifier
            temperature: Sampling temperature
            **kwargs: Extra request body fields

        Returns:
            RelayStream of completion text fragments
        """
