from django.core.management.base import BaseCommand
from django.utils import timezone

from registry.services.inventory import purge_expired


class Command(BaseCommand):
    help = "Delete inventory units whose expiry date has passed."

    def handle(self, *args, **options):
        deleted = purge_expired(timezone.now())
        self.stdout.write(self.style.SUCCESS(f"Removed {deleted} expired unit(s)."))
