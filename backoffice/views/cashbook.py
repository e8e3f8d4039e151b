"""
Cash book endpoints.

Read-only views over the cash-equivalent account: its balance up to a
date, the filtered list of authorised entries with a running balance,
and the choices used to populate the screen's filter dropdowns.
Failures to resolve the account surface as API errors through the
project exception handler.
"""
from __future__ import annotations

from django.core.cache import cache
from django.utils.text import slugify
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.permissions import IsAccountsRole
from backoffice.serializers.cashbook import CashBalanceQuerySerializer, CashBookEntriesQuerySerializer
from backoffice.services import cashbook
from backoffice.services.cashbook import CashBookFilters

# filter dropdown choices may be stale for this many seconds
FILTER_CHOICES_TTL = 30


def filter_choices_key(kind: str) -> str:
    return f"cashbook:{kind}:{slugify(cashbook.cash_account_name(), allow_unicode=True)}"


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAccountsRole])
def cash_balance(request):
    """Closing balance of the cash account.

    Query params:
      - upToDate: optional YYYY-MM-DD, only vouchers dated on or before it count
    """
    q = CashBalanceQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = cashbook.compute_balance(up_to_date=q.validated_data.get('upToDate'))
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAccountsRole])
def cash_book_entries(request):
    """Authorised cash entries ordered by voucher date.

    Query params (all optional, combined with AND):
      - fromDate, toDate: inclusive voucher date bounds
      - createdBy: id of the user who raised the voucher
      - voucherType: voucher category
      - search: text looked up in the voucher or entry narration
    """
    q = CashBookEntriesQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    filters = CashBookFilters(
        from_date=vd.get('fromDate'),
        to_date=vd.get('toDate'),
        created_by=vd.get('createdBy'),
        voucher_type=vd.get('voucherType') or None,
        search_narration=vd.get('search') or None,
    )
    entries, opening = cashbook.list_entries(filters)
    rows = cashbook.running_balances(opening['balance_amount'], entries)
    return Response({'ok': True, 'entries': rows, 'openingBalance': opening})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAccountsRole])
def cash_book_users(request):
    cache_key = filter_choices_key("users")
    cached = cache.get(cache_key)
    if cached is not None:
        return Response(cached)
    payload = {'ok': True, 'data': cashbook.list_entry_creators()}
    cache.set(cache_key, payload, FILTER_CHOICES_TTL)
    return Response(payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAccountsRole])
def cash_book_voucher_types(request):
    cache_key = filter_choices_key("voucher-types")
    cached = cache.get(cache_key)
    if cached is not None:
        return Response(cached)
    payload = {'ok': True, 'data': cashbook.list_voucher_types()}
    cache.set(cache_key, payload, FILTER_CHOICES_TTL)
    return Response(payload)
