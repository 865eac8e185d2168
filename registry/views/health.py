from django.conf import settings
from django.db import connections
from django.http import JsonResponse


def healthz(request):
    """Database liveness plus the chain this deployment expects."""
    chain = {'chainId': settings.CHAIN_ID, 'contractConfigured': bool(settings.CONTRACT_ADDRESS)}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except Exception as e:
        return JsonResponse({'ok': False, 'error': str(e), 'chain': chain}, status=500)
    return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1), 'chain': chain})
