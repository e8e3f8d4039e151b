from django.conf import settings
from django.db import DatabaseError, connections
from django.http import JsonResponse

from backoffice.models import Account


def healthz(request):
    """Database round-trip plus whether the cash book account is usable."""
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        cash_ready = Account.objects.filter(
            account_name=settings.CASHBOOK_ACCOUNT_NAME, is_active=True
        ).exists()
    except DatabaseError as e:
        return JsonResponse({'ok': False, 'error': str(e)}, status=503)
    return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1), 'cashAccount': cash_ready})
