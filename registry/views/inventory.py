"""
Blood inventory views (``/api/inventory``).

``GET`` returns totals per blood type rather than individual units;
``DELETE`` purges every unit past its expiry date.
"""
from __future__ import annotations

from rest_framework.decorators import api_view
from rest_framework.response import Response

from registry.exceptions import fails_with
from registry.serializers.inventory import InventoryCreateSerializer, InventoryUpdateSerializer
from registry.services.inventory import add_unit, format_unit, inventory_summary, purge_expired, update_unit


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
def inventory(request):
    if request.method == 'POST':
        return _create(request)
    if request.method == 'PUT':
        return _update(request)
    if request.method == 'DELETE':
        return _purge(request)
    return _summary(request)


@fails_with('Failed to fetch inventory')
def _summary(request):
    return Response(inventory_summary())


@fails_with('Failed to update inventory')
def _create(request):
    s = InventoryCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    unit = add_unit(
        blood_type=s.validated_data['bloodType'],
        quantity=s.validated_data['quantity'],
        donation_id=s.validated_data.get('donationId'),
    )
    return Response(format_unit(unit))


@fails_with('Failed to update inventory item')
def _update(request):
    s = InventoryUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    unit = update_unit(
        s.validated_data['id'],
        status=s.validated_data['status'],
        request_id=s.validated_data.get('requestId'),
    )
    return Response(format_unit(unit))


@fails_with('Failed to remove expired inventory')
def _purge(request):
    return Response({'success': True, 'deletedCount': purge_expired()})
