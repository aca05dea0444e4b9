"""
Views for the review relay.
"""
import json
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse, StreamingHttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from review.services import config as config_service
from review.services.ai import AIRouter, ReviewRequest
from review.services.exceptions import ServiceNotConfigured
from review.services.integrations import IntegrationError

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def review_stream(request):
    """
    Stream the review of the posted text.

    Expects JSON payload:
    {
        "inputCode": "Text to review",
        "model": "gpt-3.5-turbo" (optional),
        "apiKey": "sk-..." (optional, falls back to OPENAI_API_KEY),
        "inputLanguage": "...", "outputLanguage": "..." (accepted, unused)
    }

    Returns a chunked text/plain body of raw UTF-8 fragments of the model's
    HTML. Errors found before streaming starts are returned as JSON
    {"error": "..."}; a failure mid-stream truncates the body.
    """
    try:
        data = json.loads(request.body)
        review_request = ReviewRequest.from_payload(
            data,
            default_model=config_service.get_default_model(),
        )
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JsonResponse({'error': 'Invalid JSON'}, status=400)
    except ValidationError as e:
        return JsonResponse({'error': e.messages[0]}, status=400)

    try:
        stream = AIRouter().stream_review(review_request)
    except ServiceNotConfigured as e:
        logger.error(f"Review relay not configured: {e}")
        return JsonResponse({'error': str(e)}, status=500)
    except IntegrationError as e:
        logger.error(f"Error in review_stream: {e}", exc_info=True)
        return JsonResponse({'error': str(e)}, status=500)

    response = StreamingHttpResponse(
        stream.iter_bytes(),
        content_type='text/plain; charset=utf-8',
    )
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response
