import functools
import logging

from django.db import transaction
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled API error', exc_info=exc)
        return Response({'error': 'Internal server error'}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    resp.data = {'error': detail}
    return resp


def fails_with(message):
    """Turn any failure inside a record handler into ``{'error': message}`` / 500.

    Record routes do not distinguish bad input, missing rows and database
    errors; callers only ever see the per-operation message.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(request, *args, **kwargs):
            try:
                with transaction.atomic():
                    return func(request, *args, **kwargs)
            except Exception as exc:
                logger.warning('%s: %s', message, exc)
                return Response({'error': message}, status=500)
        return wrapper
    return decorator
