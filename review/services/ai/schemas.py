"""
Data schemas for review requests, relay state and review results.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError


@dataclass(frozen=True)
class ReviewRequest:
    """
    One user action asking for a review.

    input_language and output_language are carried for compatibility with
    existing clients; the review prompt does not use them.
    """
    input_text: str
    model_id: str
    credential: Optional[str] = None
    input_language: str = ''
    output_language: str = ''

    def __post_init__(self):
        if not isinstance(self.input_text, str) or not self.input_text.strip():
            raise ValidationError('Please enter some text to be reviewed.', code='empty')
        if not isinstance(self.model_id, str) or not self.model_id.strip():
            raise ValidationError('A model identifier is required.', code='model')

    @classmethod
    def from_payload(cls, payload: Any, default_model: str) -> 'ReviewRequest':
        """
        Build a request from the inbound JSON body.

        Expected keys: inputCode, model, apiKey, inputLanguage, outputLanguage.

        Raises:
            ValidationError: If the payload is not an object or a field has the wrong type
        """
        if not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object.', code='invalid')

        for key in ('inputCode', 'model', 'apiKey', 'inputLanguage', 'outputLanguage'):
            value = payload.get(key)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"'{key}' must be a string.", code='invalid')

        return cls(
            input_text=payload.get('inputCode') or '',
            model_id=payload.get('model') or default_model,
            credential=payload.get('apiKey') or None,
            input_language=payload.get('inputLanguage') or '',
            output_language=payload.get('outputLanguage') or '',
        )

    def to_payload(self) -> Dict[str, str]:
        """Serialize back to the inbound JSON shape (used by ReviewClient)."""
        payload = {
            'inputLanguage': self.input_language,
            'outputLanguage': self.output_language,
            'inputCode': self.input_text,
            'model': self.model_id,
        }
        if self.credential:
            payload['apiKey'] = self.credential
        return payload

    def __repr__(self):
        # Keep credentials out of logs and tracebacks
        return (
            f"ReviewRequest(model_id={self.model_id!r}, "
            f"input_length={len(self.input_text)}, "
            f"credential={'***' if self.credential else None})"
        )


class RelayState(enum.Enum):
    """Lifecycle of a relay stream."""
    OPEN = 'open'
    CLOSED = 'closed'
    FAILED = 'failed'


@dataclass
class ReviewResult:
    """Outcome of consuming one review stream."""
    html: str
    sanitized_html: str
    completed: bool
    fragments: int = 0
    error: Optional[str] = None
