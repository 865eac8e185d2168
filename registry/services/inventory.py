from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from registry.models import BloodRequest, Donation, InventoryUnit


def format_unit(u: InventoryUnit):
    return {
        'id': u.id,
        'bloodType': u.blood_type,
        'quantity': u.quantity,
        'donationId': u.donation_id,
        'requestId': u.request_id,
        'status': u.status,
        'expiryDate': u.expiry_date.isoformat(),
        'createdAt': u.created_at.isoformat(),
        'updatedAt': u.updated_at.isoformat(),
    }


def inventory_summary():
    """Totals per blood type: overall, AVAILABLE and RESERVED volumes."""
    grouped = {}
    for unit in InventoryUnit.objects.order_by('blood_type', 'id'):
        row = grouped.setdefault(unit.blood_type, {
            'bloodType': unit.blood_type,
            'quantity': 0,
            'available': 0,
            'reserved': 0,
        })
        row['quantity'] += unit.quantity
        if unit.status == 'AVAILABLE':
            row['available'] += unit.quantity
        elif unit.status == 'RESERVED':
            row['reserved'] += unit.quantity
    return list(grouped.values())


def add_unit(*, blood_type: str, quantity: int, donation_id: Optional[int] = None) -> InventoryUnit:
    donation = Donation.objects.get(id=donation_id) if donation_id else None
    return InventoryUnit.objects.create(
        blood_type=blood_type,
        quantity=quantity,
        donation=donation,
        status='AVAILABLE',
        expiry_date=timezone.now() + timedelta(days=settings.INVENTORY_SHELF_LIFE_DAYS),
    )


def update_unit(unit_id: int, *, status: str, request_id: Optional[int] = None) -> InventoryUnit:
    unit = InventoryUnit.objects.get(id=unit_id)
    unit.status = status
    unit.request = BloodRequest.objects.get(id=request_id) if request_id else None
    unit.save(update_fields=['status', 'request', 'updated_at'])
    return unit


@transaction.atomic
def purge_expired(now=None) -> int:
    now = now or timezone.now()
    deleted, _ = InventoryUnit.objects.filter(expiry_date__lt=now).delete()
    return deleted

