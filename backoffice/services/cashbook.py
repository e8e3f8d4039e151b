"""
Cash book reads over the chart of accounts.

Everything here is read-only: balances and listings are computed from
the voucher entries posted against one named account (``Cash in Hand``
unless configured otherwise).  Only entries of ``AUTHORISED`` vouchers
are ever considered; entries of other vouchers are left out entirely.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.db import DatabaseError
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from backoffice.exceptions import AccountInactive, AccountNotFound, LedgerStoreError
from backoffice.models import Account, User, Voucher, VoucherEntry, VoucherType

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass
class CashBookFilters:
    """Optional, conjunctive filters for :func:`list_entries`."""
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    created_by: Optional[int] = None
    voucher_type: Optional[str] = None
    search_narration: Optional[str] = None


def cash_account_name() -> str:
    return settings.CASHBOOK_ACCOUNT_NAME


@contextmanager
def _ledger_store(action: str):
    try:
        yield
    except DatabaseError as exc:
        logger.error('Error %s: %s', action, exc)
        raise LedgerStoreError(f'Database error: {exc}') from exc


def _find_account(account_name: str) -> Optional[Account]:
    with _ledger_store(f'fetching account {account_name!r}'):
        return Account.objects.filter(account_name=account_name).first()


def resolve_account(account_name: str) -> Account:
    """Return the active account called ``account_name``.

    Raises :class:`AccountNotFound` or :class:`AccountInactive`; callers
    must not query entries for an account that fails to resolve.
    """
    account = _find_account(account_name)
    if account is None:
        logger.error('Account %r not found in chart of accounts', account_name)
        raise AccountNotFound(
            f'Account "{account_name}" not found. Please ensure it exists in the chart of accounts.'
        )
    if not account.is_active:
        logger.error('Account %r exists but is inactive', account_name)
        raise AccountInactive(
            f'Account "{account_name}" is inactive. Please activate it in the chart of accounts.'
        )
    return account


def authorised_entries(account: Account, up_to_date: Optional[date] = None):
    qs = VoucherEntry.objects.filter(account=account, voucher__status=Voucher.STATUS_AUTHORISED)
    if up_to_date:
        qs = qs.filter(voucher__voucher_date__lte=up_to_date)
    return qs


def signed_opening(account: Account) -> Decimal:
    """Opening balance as a signed amount: positive for DR, negative for CR."""
    opening = account.opening_balance or ZERO
    return opening if account.opening_balance_type == Account.DR else -opening


def compute_balance(account_name: Optional[str] = None, up_to_date: Optional[date] = None) -> dict:
    """Opening, movement and closing balance of an account.

    The closing balance follows the account's opening side.  The
    reported ``balance_type`` only looks at the sign of the closing
    amount, so a CR account with a positive closing balance is
    reported as DR.
    """
    account = resolve_account(account_name or cash_account_name())

    amount = DecimalField(max_digits=16, decimal_places=2)
    with _ledger_store('calculating balance'):
        totals = authorised_entries(account, up_to_date).aggregate(
            total_debit=Coalesce(Sum('debit_amount'), Value(ZERO), output_field=amount),
            total_credit=Coalesce(Sum('credit_amount'), Value(ZERO), output_field=amount),
        )
    total_debit = totals['total_debit'] or ZERO
    total_credit = totals['total_credit'] or ZERO

    opening = account.opening_balance or ZERO
    if account.opening_balance_type == Account.DR:
        closing = opening + total_debit - total_credit
    else:
        closing = opening - total_debit + total_credit

    return {
        'opening_balance': opening,
        'opening_balance_type': account.opening_balance_type,
        'total_debit': total_debit,
        'total_credit': total_credit,
        'closing_balance': closing,
        'balance_type': Account.DR if closing >= 0 else Account.CR,
    }


def filter_entries(qs, filters: CashBookFilters):
    if filters.from_date:
        qs = qs.filter(voucher__voucher_date__gte=filters.from_date)
    if filters.to_date:
        qs = qs.filter(voucher__voucher_date__lte=filters.to_date)
    if filters.created_by:
        qs = qs.filter(voucher__created_by_id=filters.created_by)
    if filters.voucher_type:
        qs = qs.filter(voucher__voucher_type__voucher_category=filters.voucher_type)
    return qs


def narration_matches(entry: VoucherEntry, term: Optional[str]) -> bool:
    """Case-insensitive substring match on the voucher or entry narration.

    Done in Python: SQLite's LIKE only folds ASCII letters.
    """
    if not term:
        return True
    needle = term.casefold()
    return needle in (entry.voucher.narration or '').casefold() or needle in (entry.narration or '').casefold()


def _entry_row(entry: VoucherEntry) -> dict:
    voucher = entry.voucher
    created_at = voucher.created_at
    return {
        'voucher_date': voucher.voucher_date,
        'transaction_time': created_at,
        'time_only': timezone.localtime(created_at).strftime('%H:%M:%S') if created_at else '',
        'voucher_number': voucher.voucher_number or '',
        'voucher_type': voucher.voucher_type.voucher_type_name if voucher.voucher_type else '',
        'voucher_narration': voucher.narration or '',
        'entry_narration': entry.narration or '',
        'debit_amount': entry.debit_amount or ZERO,
        'credit_amount': entry.credit_amount or ZERO,
        'particulars': voucher.patient.name if voucher.patient else settings.CASHBOOK_PARTICULARS_FALLBACK,
        'user_id': voucher.created_by_id or '',
        'entered_by': settings.CASHBOOK_ENTERED_BY,
        'status': voucher.status,
        'voucher_id': voucher.id,
        'entry_id': entry.id,
    }


def list_entries(filters: Optional[CashBookFilters] = None,
                 account_name: Optional[str] = None) -> tuple[list[dict], dict]:
    """Return ``(entries, opening)`` for the cash book screen.

    ``entries`` are flat rows ordered by voucher date; ``opening`` holds
    the account's opening balance together with its signed
    ``balance_amount`` for running-balance display.
    """
    filters = filters or CashBookFilters()
    account = resolve_account(account_name or cash_account_name())

    qs = filter_entries(authorised_entries(account), filters)
    qs = qs.select_related('voucher', 'voucher__voucher_type', 'voucher__patient').order_by('voucher__voucher_date')
    with _ledger_store('fetching cash book entries'):
        entries = [_entry_row(entry) for entry in qs if narration_matches(entry, filters.search_narration)]

    opening = {
        'opening_balance': account.opening_balance or ZERO,
        'opening_balance_type': account.opening_balance_type,
        'balance_amount': signed_opening(account),
    }
    return entries, opening


def running_balances(balance_amount: Decimal, entries: Iterable[dict]) -> list[dict]:
    """Attach a cumulative ``balance`` (debit minus credit) to each row."""
    balance = balance_amount
    rows = []
    for entry in entries:
        balance = balance + (entry['debit_amount'] or ZERO) - (entry['credit_amount'] or ZERO)
        rows.append({**entry, 'balance': balance})
    return rows


def _active_account_or_none(account_name: Optional[str]) -> Optional[Account]:
    account = _find_account(account_name or cash_account_name())
    if account is None or not account.is_active:
        return None
    return account


def list_entry_creators(account_name: Optional[str] = None) -> list[dict]:
    """Users who created vouchers posting to the account, for filter choices."""
    account = _active_account_or_none(account_name)
    if account is None:
        return []
    with _ledger_store('fetching cash book users'):
        users = list(
            User.objects.filter(vouchers_created__entries__account=account).distinct().order_by('username')
        )
    return [{'id': u.id, 'username': u.username, 'full_name': u.get_full_name() or u.username} for u in users]


def list_voucher_types(account_name: Optional[str] = None) -> list[dict]:
    """Distinct voucher types used by vouchers posting to the account."""
    account = _active_account_or_none(account_name)
    if account is None:
        return []
    with _ledger_store('fetching cash book voucher types'):
        types = list(
            VoucherType.objects.filter(vouchers__entries__account=account).distinct().order_by('voucher_type_name')
        )
    return [{
        'id': t.id,
        'voucher_type_name': t.voucher_type_name,
        'voucher_category': t.voucher_category,
        'voucher_type_code': t.voucher_type_code,
    } for t in types]
