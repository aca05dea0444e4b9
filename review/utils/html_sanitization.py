"""
HTML Sanitization Utilities.

The review model answers with HTML: paragraphs of the original text with
findings wrapped in coloured <span title="..."> annotations. This module
reduces that output to the markup the review display needs before it is
rendered anywhere.
"""

import re

import bleach
from bleach.css_sanitizer import CSSSanitizer
from django.utils.safestring import mark_safe


# Allowed HTML tags for sanitization
ALLOWED_TAGS = [
    'p', 'br', 'strong', 'em', 'u', 's', 'strike',
    'ul', 'ol', 'li',
    'blockquote', 'code', 'pre',
    'span', 'div',
]

# Allowed HTML attributes for sanitization
ALLOWED_ATTRIBUTES = {
    'span': ['style', 'title'],
    'p': ['style'],
    'div': ['style'],
}

# Annotations only ever set colours
ALLOWED_CSS_PROPERTIES = ['color', 'background-color']

# Elements whose content must go, not just their tags
_DROP_CONTENT_RE = re.compile(
    r'<(script|style|iframe|object|template)\b[^>]*>.*?(</\1\s*>|$)',
    re.IGNORECASE | re.DOTALL,
)

# Create a CSS sanitizer for safe inline styles
css_sanitizer = CSSSanitizer(allowed_css_properties=ALLOWED_CSS_PROPERTIES)


def sanitize_review_html(html):
    """
    Sanitize review output to prevent XSS while keeping the annotations.

    Script-like elements are removed together with their content; other
    disallowed tags are stripped and their text kept. Event handler
    attributes and CSS beyond colours are dropped.

    Args:
        html: HTML string to sanitize (complete or partial)

    Returns:
        Safe HTML string (marked as safe to prevent double-escaping)
    """
    if not html:
        return ""

    html = _DROP_CONTENT_RE.sub('', html)

    sanitized_html = bleach.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        css_sanitizer=css_sanitizer,
        strip=True,
        strip_comments=True,
    )

    return mark_safe(sanitized_html)


def strip_html_tags(html):
    """
    Strip all HTML tags from a string, leaving only the text content.

    Args:
        html: HTML string

    Returns:
        Plain text string with all HTML tags removed
    """
    if not html:
        return ""

    # Use bleach to strip all tags
    return bleach.clean(_DROP_CONTENT_RE.sub('', html), tags=[], strip=True)
