from typing import Optional

from django.utils import timezone

from registry.models import Donation, User
from registry.services.users import format_user


def format_donation(d: Donation):
    return {
        'id': d.id,
        'transactionHash': d.transaction_hash,
        'donorAddress': d.donor_id,
        'bloodType': d.blood_type,
        'quantity': d.quantity,
        'donorName': d.donor_name,
        'age': d.age,
        'contact': d.contact,
        'status': d.status,
        'timestamp': d.timestamp.isoformat(),
        'updatedAt': d.updated_at.isoformat(),
    }


def create_donation(*, transaction_hash, donor_address, blood_type, quantity, donor_name, age, contact) -> Donation:
    # the donor must already be registered under this wallet address
    donor = User.objects.get(address=donor_address)
    return Donation.objects.create(
        transaction_hash=transaction_hash,
        donor=donor,
        blood_type=blood_type,
        quantity=quantity,
        donor_name=donor_name,
        age=age,
        contact=contact,
        status='PENDING',
        timestamp=timezone.now(),
    )


def list_donations(*, donor_address: Optional[str] = None, status: Optional[str] = None):
    qs = Donation.objects.select_related('donor')
    if donor_address:
        qs = qs.filter(donor_id=donor_address)
    if status:
        qs = qs.filter(status=status)
    data = []
    for d in qs.order_by('-timestamp', '-id'):
        item = format_donation(d)
        item['donor'] = format_user(d.donor)
        data.append(item)
    return data


def update_donation_status(donation_id: int, status: str) -> Donation:
    donation = Donation.objects.get(id=donation_id)
    donation.status = status
    donation.save(update_fields=['status', 'updated_at'])
    return donation


def delete_donation(donation_id: int) -> None:
    Donation.objects.get(id=donation_id).delete()
