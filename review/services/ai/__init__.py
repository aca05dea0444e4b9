"""
AI relay service for Redline.

This package turns a review request into one streamed chat completion and
exposes the model output as an iterator of text fragments.
"""

from .router import AIRouter
from .relay import RelayStream
from .schemas import ReviewRequest, ReviewResult, RelayState

__all__ = ['AIRouter', 'RelayStream', 'ReviewRequest', 'ReviewResult', 'RelayState']
