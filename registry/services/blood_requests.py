from typing import Optional

from django.utils import timezone

from registry.models import BloodRequest, User
from registry.services.users import format_user


def format_blood_request(r: BloodRequest):
    return {
        'id': r.id,
        'transactionHash': r.transaction_hash,
        'requesterAddress': r.requester_id,
        'bloodType': r.blood_type,
        'quantity': r.quantity,
        'recipientName': r.recipient_name,
        'age': r.age,
        'contact': r.contact,
        'hospital': r.hospital,
        'reason': r.reason,
        'status': r.status,
        'fulfilledBy': r.fulfilled_by,
        'fulfilledAt': r.fulfilled_at.isoformat() if r.fulfilled_at else None,
        'timestamp': r.timestamp.isoformat(),
        'updatedAt': r.updated_at.isoformat(),
    }


def create_blood_request(*, transaction_hash, requester_address, blood_type, quantity,
                         recipient_name, age, contact, hospital, reason) -> BloodRequest:
    requester = User.objects.get(address=requester_address)
    return BloodRequest.objects.create(
        transaction_hash=transaction_hash,
        requester=requester,
        blood_type=blood_type,
        quantity=quantity,
        recipient_name=recipient_name,
        age=age,
        contact=contact,
        hospital=hospital,
        reason=reason,
        status='PENDING',
        timestamp=timezone.now(),
    )


def list_blood_requests(*, requester_address: Optional[str] = None, status: Optional[str] = None):
    qs = BloodRequest.objects.select_related('requester')
    if requester_address:
        qs = qs.filter(requester_id=requester_address)
    if status:
        qs = qs.filter(status=status)
    data = []
    for r in qs.order_by('-timestamp', '-id'):
        item = format_blood_request(r)
        item['requester'] = format_user(r.requester)
        data.append(item)
    return data


def update_blood_request(request_id: int, *, status: str, fulfilled_by: Optional[str] = None) -> BloodRequest:
    """Set the status; ``fulfilled_at`` is stamped only for FULFILLED and cleared otherwise."""
    blood_request = BloodRequest.objects.get(id=request_id)
    blood_request.status = status
    blood_request.fulfilled_by = fulfilled_by or None
    blood_request.fulfilled_at = timezone.now() if status == 'FULFILLED' else None
    blood_request.save(update_fields=['status', 'fulfilled_by', 'fulfilled_at', 'updated_at'])
    return blood_request


def delete_blood_request(request_id: int) -> None:
    BloodRequest.objects.get(id=request_id).delete()
