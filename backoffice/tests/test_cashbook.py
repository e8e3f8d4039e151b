from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.db import DatabaseError

from backoffice.exceptions import AccountInactive, AccountNotFound, LedgerStoreError
from backoffice.models import Account, Patient, User, Voucher, VoucherEntry, VoucherType
from backoffice.services import cashbook
from backoffice.services.cashbook import CashBookFilters

pytestmark = pytest.mark.django_db


def make_account(opening='1000', side=Account.DR, **kwargs):
    kwargs.setdefault('account_name', 'Cash in Hand')
    return Account.objects.create(opening_balance=Decimal(opening), opening_balance_type=side, **kwargs)


def post(account, on, *, debit='0', credit='0', status=Voucher.STATUS_AUTHORISED, narration='',
         entry_narration='', voucher_type=None, patient=None, user=None, number=''):
    voucher = Voucher.objects.create(
        voucher_number=number, voucher_date=on, status=status, voucher_type=voucher_type,
        patient=patient, created_by=user, narration=narration,
    )
    return VoucherEntry.objects.create(
        voucher=voucher, account=account,
        debit_amount=None if debit is None else Decimal(debit),
        credit_amount=None if credit is None else Decimal(credit),
        narration=entry_narration,
    )


# ---------------------------------------------------------------------------
# compute_balance
# ---------------------------------------------------------------------------

def test_debit_account_closing_balance():
    cash = make_account('1000', Account.DR)
    post(cash, date(2024, 4, 1), debit='500')
    post(cash, date(2024, 4, 2), credit='200')

    result = cashbook.compute_balance()

    assert result['opening_balance'] == Decimal('1000')
    assert result['opening_balance_type'] == 'DR'
    assert result['total_debit'] == Decimal('500')
    assert result['total_credit'] == Decimal('200')
    assert result['closing_balance'] == Decimal('1300')
    assert result['balance_type'] == 'DR'


def test_credit_account_going_negative_is_reported_by_sign():
    cash = make_account('1000', Account.CR)
    post(cash, date(2024, 4, 1), debit='1500')

    result = cashbook.compute_balance()

    assert result['closing_balance'] == Decimal('-500')
    assert result['balance_type'] == 'CR'


def test_credit_account_with_positive_closing_is_reported_as_dr():
    cash = make_account('1000', Account.CR)
    post(cash, date(2024, 4, 1), credit='500')

    result = cashbook.compute_balance()

    assert result['closing_balance'] == Decimal('1500')
    assert result['balance_type'] == 'DR'


def test_zero_closing_balance_is_dr():
    cash = make_account('300', Account.DR)
    post(cash, date(2024, 4, 1), credit='300')
    assert cashbook.compute_balance()['balance_type'] == 'DR'


def test_only_authorised_vouchers_count_towards_totals():
    cash = make_account('0')
    post(cash, date(2024, 4, 1), debit='100')
    post(cash, date(2024, 4, 1), debit='999', status=Voucher.STATUS_DRAFT)
    post(cash, date(2024, 4, 1), credit='777', status=Voucher.STATUS_CANCELLED)

    result = cashbook.compute_balance()

    assert result['total_debit'] == Decimal('100')
    assert result['total_credit'] == Decimal('0')
    assert result['closing_balance'] == Decimal('100')


def test_up_to_date_is_inclusive():
    cash = make_account('0')
    post(cash, date(2024, 4, 1), debit='100')
    post(cash, date(2024, 4, 2), debit='50')
    post(cash, date(2024, 4, 3), debit='25')

    result = cashbook.compute_balance(up_to_date=date(2024, 4, 2))

    assert result['total_debit'] == Decimal('150')


def test_missing_amounts_count_as_zero():
    cash = make_account('10')
    post(cash, date(2024, 4, 1), debit=None, credit='4')
    post(cash, date(2024, 4, 1), debit='6', credit=None)

    result = cashbook.compute_balance()

    assert result['total_debit'] == Decimal('6')
    assert result['total_credit'] == Decimal('4')
    assert result['closing_balance'] == Decimal('12')


def test_no_entries_gives_opening_as_closing():
    make_account('750', Account.DR)
    result = cashbook.compute_balance()
    assert result['total_debit'] == 0
    assert result['total_credit'] == 0
    assert result['closing_balance'] == Decimal('750')


def test_other_accounts_are_ignored():
    cash = make_account('0')
    bank = make_account('0', account_name='Bank')
    post(cash, date(2024, 4, 1), debit='10')
    post(bank, date(2024, 4, 1), debit='90')
    assert cashbook.compute_balance()['total_debit'] == Decimal('10')
    assert cashbook.compute_balance('Bank')['total_debit'] == Decimal('90')


def test_missing_account_fails_before_any_ledger_query(django_assert_num_queries):
    with django_assert_num_queries(1):
        with pytest.raises(AccountNotFound) as exc:
            cashbook.compute_balance()
    assert 'Cash in Hand' in str(exc.value.detail)


def test_inactive_account_fails_before_any_ledger_query(django_assert_num_queries):
    cash = make_account('100', is_active=False)
    post(cash, date(2024, 4, 1), debit='10')
    with django_assert_num_queries(1):
        with pytest.raises(AccountInactive):
            cashbook.compute_balance()
    with pytest.raises(AccountInactive):
        cashbook.list_entries()


def test_store_error_keeps_underlying_message(monkeypatch):
    make_account('0')

    class BrokenQuery:
        def aggregate(self, **kwargs):
            raise DatabaseError('relation "voucher_entries" does not exist')

    monkeypatch.setattr(cashbook, 'authorised_entries', lambda account, up_to_date=None: BrokenQuery())
    with pytest.raises(LedgerStoreError) as exc:
        cashbook.compute_balance()
    assert 'relation "voucher_entries" does not exist' in str(exc.value.detail)


def test_configured_account_name_is_used(settings):
    settings.CASHBOOK_ACCOUNT_NAME = 'Petty Cash'
    petty = make_account('40', account_name='Petty Cash')
    post(petty, date(2024, 4, 1), debit='2')
    assert cashbook.compute_balance()['closing_balance'] == Decimal('42')


# ---------------------------------------------------------------------------
# list_entries
# ---------------------------------------------------------------------------

def test_listing_excludes_unauthorised_vouchers_for_every_filter():
    cash = make_account('0')
    vt = VoucherType.objects.create(voucher_type_name='Receipt Voucher', voucher_category='RECEIPT')
    user = User.objects.create_user(username='acc1', password='P@ssw0rd1', role='accounts')
    post(cash, date(2024, 4, 2), debit='1', narration='fee', voucher_type=vt, user=user)
    for status in (Voucher.STATUS_DRAFT, Voucher.STATUS_CANCELLED):
        post(cash, date(2024, 4, 2), debit='9', narration='fee', voucher_type=vt, user=user, status=status)

    for filters in [
        CashBookFilters(),
        CashBookFilters(from_date=date(2024, 4, 1), to_date=date(2024, 4, 3)),
        CashBookFilters(created_by=user.id),
        CashBookFilters(voucher_type='RECEIPT'),
        CashBookFilters(search_narration='FEE'),
    ]:
        entries, _ = cashbook.list_entries(filters)
        assert [e['debit_amount'] for e in entries] == [Decimal('1')]
        assert all(e['status'] == 'AUTHORISED' for e in entries)


def test_date_bounds_are_inclusive_and_optional():
    cash = make_account('0')
    for day in (1, 2, 3, 4, 5):
        post(cash, date(2024, 4, day), debit=str(day))

    def days(filters):
        entries, _ = cashbook.list_entries(filters)
        return sorted(e['voucher_date'].day for e in entries)

    assert days(CashBookFilters(from_date=date(2024, 4, 2), to_date=date(2024, 4, 4))) == [2, 3, 4]
    assert days(CashBookFilters(from_date=date(2024, 4, 4))) == [4, 5]
    assert days(CashBookFilters(to_date=date(2024, 4, 2))) == [1, 2]
    assert days(CashBookFilters()) == [1, 2, 3, 4, 5]


def test_search_matches_voucher_or_entry_narration():
    cash = make_account('0')
    post(cash, date(2024, 4, 1), debit='1', narration='OPD fee XYZ-12')
    post(cash, date(2024, 4, 1), debit='2', entry_narration='refund xyz')
    post(cash, date(2024, 4, 1), debit='3', narration='pharmacy', entry_narration='cash')

    entries, _ = cashbook.list_entries(CashBookFilters(search_narration='xyz'))

    assert sorted(e['debit_amount'] for e in entries) == [Decimal('1'), Decimal('2')]


def test_created_by_and_voucher_type_filters_are_exact_and_combined():
    cash = make_account('0')
    receipt = VoucherType.objects.create(voucher_type_name='Receipt Voucher', voucher_category='RECEIPT')
    payment = VoucherType.objects.create(voucher_type_name='Payment Voucher', voucher_category='PAYMENT')
    alice = User.objects.create_user(username='alice', password='P@ssw0rd1')
    bob = User.objects.create_user(username='bob', password='P@ssw0rd1')
    post(cash, date(2024, 4, 1), debit='1', voucher_type=receipt, user=alice)
    post(cash, date(2024, 4, 1), credit='2', voucher_type=payment, user=alice)
    post(cash, date(2024, 4, 1), debit='3', voucher_type=receipt, user=bob)

    entries, _ = cashbook.list_entries(CashBookFilters(created_by=alice.id, voucher_type='RECEIPT'))
    assert len(entries) == 1
    assert entries[0]['debit_amount'] == Decimal('1')
    assert entries[0]['voucher_type'] == 'Receipt Voucher'
    assert entries[0]['user_id'] == alice.id

    entries, _ = cashbook.list_entries(CashBookFilters(voucher_type='Receipt Voucher'))
    assert entries == []


def test_entries_are_ordered_by_voucher_date():
    cash = make_account('0')
    post(cash, date(2024, 4, 3), debit='3')
    post(cash, date(2024, 4, 1), debit='1')
    post(cash, date(2024, 4, 2), debit='2')

    entries, _ = cashbook.list_entries()

    assert [e['voucher_date'] for e in entries] == [date(2024, 4, 1), date(2024, 4, 2), date(2024, 4, 3)]


def test_entry_row_projection(settings):
    settings.TIME_ZONE = 'Asia/Kolkata'
    cash = make_account('0')
    patient = Patient.objects.create(name='Ravi Sharma')
    entry = post(cash, date(2024, 4, 1), debit='250.50', narration='OPD fee', entry_narration='cash received',
                 patient=patient, number='RV-00001')
    Voucher.objects.filter(pk=entry.voucher_id).update(
        created_at=datetime(2024, 4, 1, 4, 30, 15, tzinfo=dt_timezone.utc)
    )
    post(cash, date(2024, 4, 2), credit='10')

    entries, _ = cashbook.list_entries()
    first, second = entries

    assert first['voucher_number'] == 'RV-00001'
    assert first['time_only'] == '10:00:15'
    assert first['voucher_narration'] == 'OPD fee'
    assert first['entry_narration'] == 'cash received'
    assert first['debit_amount'] == Decimal('250.50')
    assert first['credit_amount'] == Decimal('0')
    assert first['particulars'] == 'Ravi Sharma'
    assert first['entered_by'] == 'System'
    assert first['voucher_id'] == entry.voucher_id
    assert first['entry_id'] == entry.id
    assert second['particulars'] == 'Cash Transaction'
    assert second['voucher_type'] == ''
    assert second['user_id'] == ''


@pytest.mark.parametrize('side, expected', [(Account.DR, Decimal('1000')), (Account.CR, Decimal('-1000'))])
def test_opening_balance_is_signed_by_side(side, expected):
    make_account('1000', side)
    _, opening = cashbook.list_entries()
    assert opening['opening_balance'] == Decimal('1000')
    assert opening['opening_balance_type'] == side
    assert opening['balance_amount'] == expected


def test_running_balances_accumulate_on_signed_opening():
    rows = cashbook.running_balances(Decimal('-100'), [
        {'debit_amount': Decimal('50'), 'credit_amount': Decimal('0')},
        {'debit_amount': Decimal('0'), 'credit_amount': Decimal('20')},
        {'debit_amount': None, 'credit_amount': None},
    ])
    assert [r['balance'] for r in rows] == [Decimal('-50'), Decimal('-70'), Decimal('-70')]


# ---------------------------------------------------------------------------
# filter choices
# ---------------------------------------------------------------------------

def test_filter_choices_come_from_the_cash_account():
    cash = make_account('0')
    bank = make_account('0', account_name='Bank')
    receipt = VoucherType.objects.create(voucher_type_name='Receipt Voucher', voucher_category='RECEIPT')
    contra = VoucherType.objects.create(voucher_type_name='Contra Voucher', voucher_category='CONTRA')
    alice = User.objects.create_user(username='alice', password='P@ssw0rd1', first_name='Alice')
    bob = User.objects.create_user(username='bob', password='P@ssw0rd1')
    post(cash, date(2024, 4, 1), debit='1', voucher_type=receipt, user=alice)
    post(cash, date(2024, 4, 2), debit='1', voucher_type=receipt, user=alice)
    post(bank, date(2024, 4, 1), debit='1', voucher_type=contra, user=bob)

    assert cashbook.list_entry_creators() == [{'id': alice.id, 'username': 'alice', 'full_name': 'Alice'}]
    types = cashbook.list_voucher_types()
    assert [t['voucher_category'] for t in types] == ['RECEIPT']


def test_filter_choices_empty_without_usable_account():
    assert cashbook.list_entry_creators() == []
    assert cashbook.list_voucher_types() == []
    make_account('0', is_active=False)
    assert cashbook.list_entry_creators() == []
    assert cashbook.list_voucher_types() == []


def test_search_folds_case_beyond_ascii():
    cash = make_account('0')
    post(cash, date(2024, 4, 1), debit='1', narration='ÉCHOGRAPHIE fee')
    post(cash, date(2024, 4, 1), debit='2', entry_narration='Straße Klinik')
    post(cash, date(2024, 4, 1), debit='3', narration='OPD fee')

    entries, _ = cashbook.list_entries(CashBookFilters(search_narration='échographie'))
    assert [e['debit_amount'] for e in entries] == [Decimal('1')]

    entries, _ = cashbook.list_entries(CashBookFilters(search_narration='STRASSE'))
    assert [e['debit_amount'] for e in entries] == [Decimal('2')]
