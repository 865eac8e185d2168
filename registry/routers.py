"""
URL mappings for the blood bank registry API.

Record routes keep the paths the dApp front end already calls; each
path serves every verb on the same view.  Trailing slashes are
deliberately omitted.
"""
from django.urls import path, include

from .views import health
from .views.blood_requests import blood_requests
from .views.donations import donations
from .views.inventory import inventory
from .views.users import users


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Off-chain mirrors of contract records
    path('api/donations', donations, name='donations'),
    path('api/inventory', inventory, name='inventory'),
    path('api/requests', blood_requests, name='blood-requests'),
    path('api/users', users, name='users'),
]
