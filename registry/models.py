"""
Database models for the blood bank registry.

These tables mirror records whose authoritative copy lives in the
BloodDonation contract: donations and blood requests carry the hash of
the transaction that created them on-chain.  Users are keyed by wallet
address rather than by a username, so related records point at
``User.address`` instead of the numeric primary key.
"""
from __future__ import annotations

from django.db import models
from django.utils import timezone

BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']
BLOOD_TYPE_CHOICES = [(t, t) for t in BLOOD_TYPES]


class User(models.Model):
    """A wallet holder known to the registry."""
    ROLE_CHOICES = [
        ('DONOR', 'Donor'),
        ('RECIPIENT', 'Recipient'),
        ('HOSPITAL', 'Hospital'),
        ('ADMIN', 'Administrator'),
    ]
    address = models.CharField(max_length=42, unique=True)
    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='DONOR')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name or self.address} ({self.role})"


class Donation(models.Model):
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('COMPLETED', 'Completed'),
        ('REJECTED', 'Rejected'),
    ]
    transaction_hash = models.CharField(max_length=66, unique=True)
    donor = models.ForeignKey(
        User, to_field='address', db_column='donor_address',
        on_delete=models.CASCADE, related_name='donations',
    )
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    quantity = models.PositiveIntegerField(help_text="Volume in ml")
    donor_name = models.CharField(max_length=255)
    age = models.PositiveIntegerField()
    contact = models.CharField(max_length=32)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    timestamp = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self) -> str:
        return f"{self.blood_type} x{self.quantity} from {self.donor_id}"


class BloodRequest(models.Model):
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('FULFILLED', 'Fulfilled'),
        ('REJECTED', 'Rejected'),
        ('CANCELLED', 'Cancelled'),
    ]
    transaction_hash = models.CharField(max_length=66, unique=True)
    requester = models.ForeignKey(
        User, to_field='address', db_column='requester_address',
        on_delete=models.CASCADE, related_name='blood_requests',
    )
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    quantity = models.PositiveIntegerField(help_text="Volume in ml")
    recipient_name = models.CharField(max_length=255)
    age = models.PositiveIntegerField()
    contact = models.CharField(max_length=32)
    hospital = models.CharField(max_length=255)
    reason = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    fulfilled_by = models.CharField(max_length=42, blank=True, null=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self) -> str:
        return f"{self.blood_type} x{self.quantity} for {self.recipient_name}"


class InventoryUnit(models.Model):
    """A unit of collected blood waiting to be used or expire."""
    STATUS_CHOICES = [
        ('AVAILABLE', 'Available'),
        ('RESERVED', 'Reserved'),
        ('USED', 'Used'),
    ]
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, db_index=True)
    quantity = models.PositiveIntegerField(help_text="Volume in ml")
    donation = models.ForeignKey(
        Donation, null=True, blank=True, on_delete=models.SET_NULL, related_name='units',
    )
    request = models.ForeignKey(
        BloodRequest, null=True, blank=True, on_delete=models.SET_NULL, related_name='units',
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='AVAILABLE', db_index=True)
    expiry_date = models.DateTimeField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.blood_type} x{self.quantity} ({self.status})"
