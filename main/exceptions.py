"""
Central error handling for the API.

Validation errors keep DRF's field-level shape; every other failure is
rendered as ``{"error": "..."}``.
"""
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Unhandled error in %s: %s",
            view.__class__.__name__ if view else 'unknown view',
            exc,
        )
        message = str(exc) if settings.DEBUG else 'Internal server error'
        return Response({'error': message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, ValidationError):
        return response

    detail = response.data.get('detail') if isinstance(response.data, dict) else None
    if detail is not None:
        response.data = {'error': str(detail)}
    return response
