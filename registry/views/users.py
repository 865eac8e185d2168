"""
Registry user views (``/api/users``).

Users are addressed by wallet address; ``GET ?address=`` answers with
the single matching user or ``null``.
"""
from __future__ import annotations

from django.http import JsonResponse
from rest_framework.decorators import api_view
from rest_framework.response import Response

from registry.exceptions import fails_with
from registry.serializers.user import UserLookupSerializer, UserSerializer
from registry.services.users import create_user, format_user, get_user, list_users, update_user


@api_view(['GET', 'POST', 'PUT'])
def users(request):
    if request.method == 'POST':
        return _create(request)
    if request.method == 'PUT':
        return _update(request)
    return _fetch(request)


@fails_with('Failed to create user')
def _create(request):
    s = UserSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = create_user(**s.validated_data)
    return Response(format_user(user))


@fails_with('Failed to fetch users')
def _fetch(request):
    q = UserLookupSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    address = q.validated_data.get('address')
    if address:
        # an unknown address answers with a JSON null body
        return JsonResponse(format_user(get_user(address)), safe=False)
    return Response([format_user(u) for u in list_users()])


@fails_with('Failed to update user')
def _update(request):
    s = UserSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = dict(s.validated_data)
    address = fields.pop('address')
    user = update_user(address, **fields)
    return Response(format_user(user))
