"""
Blood request record views (``/api/requests``).
"""
from __future__ import annotations

from rest_framework.decorators import api_view
from rest_framework.response import Response

from registry.exceptions import fails_with
from registry.serializers.blood_request import (
    BloodRequestCreateSerializer,
    BloodRequestListQuerySerializer,
    BloodRequestUpdateSerializer,
)
from registry.serializers.donation import RecordIdQuerySerializer
from registry.services.blood_requests import (
    create_blood_request,
    delete_blood_request,
    format_blood_request,
    list_blood_requests,
    update_blood_request,
)


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
def blood_requests(request):
    if request.method == 'POST':
        return _create(request)
    if request.method == 'PUT':
        return _update(request)
    if request.method == 'DELETE':
        return _delete(request)
    return _list(request)


@fails_with('Failed to create blood request')
def _create(request):
    s = BloodRequestCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    blood_request = create_blood_request(
        transaction_hash=data['transactionHash'],
        requester_address=data['requesterAddress'],
        blood_type=data['bloodType'],
        quantity=data['quantity'],
        recipient_name=data['recipientName'],
        age=data['age'],
        contact=data['contact'],
        hospital=data['hospital'],
        reason=data['reason'],
    )
    return Response(format_blood_request(blood_request))


@fails_with('Failed to fetch blood requests')
def _list(request):
    q = BloodRequestListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response(list_blood_requests(
        requester_address=q.validated_data.get('requesterAddress'),
        status=q.validated_data.get('status'),
    ))


@fails_with('Failed to update blood request')
def _update(request):
    s = BloodRequestUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    blood_request = update_blood_request(
        s.validated_data['id'],
        status=s.validated_data['status'],
        fulfilled_by=s.validated_data.get('fulfilledBy'),
    )
    return Response(format_blood_request(blood_request))


@fails_with('Failed to delete blood request')
def _delete(request):
    q = RecordIdQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    delete_blood_request(q.validated_data['id'])
    return Response({'success': True})
