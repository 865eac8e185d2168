"""
Donation record views.

``/api/donations`` mirrors donations registered on-chain.  Every
operation answers with a fixed error message and status 500 when it
fails, whatever the cause.
"""
from __future__ import annotations

from rest_framework.decorators import api_view
from rest_framework.response import Response

from registry.exceptions import fails_with
from registry.serializers.donation import (
    DonationCreateSerializer,
    DonationListQuerySerializer,
    DonationUpdateSerializer,
    RecordIdQuerySerializer,
)
from registry.services.donations import (
    create_donation,
    delete_donation,
    format_donation,
    list_donations,
    update_donation_status,
)


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
def donations(request):
    if request.method == 'POST':
        return _create(request)
    if request.method == 'PUT':
        return _update(request)
    if request.method == 'DELETE':
        return _delete(request)
    return _list(request)


@fails_with('Failed to create donation record')
def _create(request):
    s = DonationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    donation = create_donation(
        transaction_hash=data['transactionHash'],
        donor_address=data['donorAddress'],
        blood_type=data['bloodType'],
        quantity=data['quantity'],
        donor_name=data['donorName'],
        age=data['age'],
        contact=data['contact'],
    )
    return Response(format_donation(donation))


@fails_with('Failed to fetch donations')
def _list(request):
    q = DonationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response(list_donations(
        donor_address=q.validated_data.get('donorAddress'),
        status=q.validated_data.get('status'),
    ))


@fails_with('Failed to update donation')
def _update(request):
    s = DonationUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    donation = update_donation_status(s.validated_data['id'], s.validated_data['status'])
    return Response(format_donation(donation))


@fails_with('Failed to delete donation')
def _delete(request):
    q = RecordIdQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    delete_donation(q.validated_data['id'])
    return Response({'success': True})
