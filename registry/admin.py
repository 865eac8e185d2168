"""
Django admin registrations for the registry models.

Lets staff inspect the off-chain mirrors at ``/admin/`` and correct
statuses by hand while the contract stays the source of truth.
"""

from django.contrib import admin

from .models import BloodRequest, Donation, InventoryUnit, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('address', 'name', 'email', 'role', 'created_at')
    list_filter = ('role',)
    search_fields = ('address', 'name', 'email')


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ('id', 'donor', 'blood_type', 'quantity', 'status', 'timestamp')
    list_filter = ('status', 'blood_type')
    search_fields = ('transaction_hash', 'donor__address', 'donor_name')


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'requester', 'blood_type', 'quantity', 'hospital', 'status', 'timestamp')
    list_filter = ('status', 'blood_type')
    search_fields = ('transaction_hash', 'requester__address', 'recipient_name', 'hospital')


@admin.register(InventoryUnit)
class InventoryUnitAdmin(admin.ModelAdmin):
    list_display = ('id', 'blood_type', 'quantity', 'status', 'expiry_date')
    list_filter = ('status', 'blood_type')
