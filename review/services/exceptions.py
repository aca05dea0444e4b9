"""
Service-layer exceptions for consistent error handling across Redline.

These exceptions describe configuration and availability problems of a
service, as opposed to failures talking to an external system (see
review.services.integrations.errors).
"""


class ServiceError(Exception):
    """Base exception for all service-related errors."""
    pass


class ServiceNotConfigured(ServiceError):
    """
    Raised when a service is used but its configuration is incomplete or missing.
    
    Example:
        No request credential was supplied and OPENAI_API_KEY is not set.
    """
    pass
