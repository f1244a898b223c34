# fuelpos/exceptions.py
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ConflictError(APIException):
    """Request collides with current state (open shift exists, duplicate number...)."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state."
    default_code = "conflict"


def api_exception_handler(exc, context):
    """
    DRF handles its own exceptions plus Http404/PermissionDenied. Anything
    else is a server fault: log it with the view name and hide the detail.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, (Http404, DjangoPermissionDenied)):
        return None

    view = context.get("view")
    logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "unknown view")
    return Response({"detail": "Server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
