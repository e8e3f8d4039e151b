"""
Management command to populate the database with demo data.
"""
from datetime import timedelta
from decimal import Decimal
import random

from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from backoffice.models import (
    User, Account, VoucherType, Patient, Voucher, VoucherEntry, RadiologyTest, RadiologySubSpecialty,
)
from backoffice.services.radiology import DEFAULT_COST

DEMO_USERS = [
    ("accounts1", "accounts"),
    ("admin1", "admin"),
    ("super", "super"),
]

VOUCHER_TYPES = [
    ("Receipt Voucher", "RECEIPT", "RV"),
    ("Payment Voucher", "PAYMENT", "PV"),
    ("Contra Voucher", "CONTRA", "CV"),
]

RADIOLOGY_TESTS = [
    ("X-Ray Chest PA View", "X-Ray", 350),
    ("USG Abdomen & Pelvis", "Ultrasound", 1200),
    ("CT Scan Brain (Plain)", "CT", 2500),
    ("MRI Lumbar Spine", "MRI", 6500),
    ("Mammography Bilateral", "Mammography", 1800),
    ("X-Ray Knee AP/Lat", "X-Ray", 450),
    ("Doppler Lower Limb Venous", "Ultrasound", 2200),
    ("HRCT Chest", "CT", 3800),
]

PATIENT_NAMES = ["Ravi Sharma", "Anita Verma", "Mohd. Imran", "Sunita Patel", "Kiran Joshi"]


class Command(BaseCommand):
    help = 'Populate database with demo cash book and radiology data'

    def add_arguments(self, parser):
        parser.add_argument('--vouchers', type=int, default=30, help='number of vouchers to post')
        parser.add_argument('--seed', type=int, default=None)

    def handle(self, *args, **options):
        random.seed(options['seed'])
        with transaction.atomic():
            users = self.create_users()
            accounts = self.create_accounts()
            voucher_types = self.create_voucher_types()
            patients = self.create_patients()
            count = self.create_vouchers(options['vouchers'], users, accounts, voucher_types, patients)
            tests = self.create_radiology_tests()
        self.stdout.write(self.style.SUCCESS(
            f"Demo data ready: {count} vouchers, {tests} radiology tests."
        ))

    def create_users(self):
        users = []
        for username, role in DEMO_USERS:
            u, _ = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": make_password("123456"), "is_active": True},
            )
            users.append(u)
            self.stdout.write(f"user: {username} ({role})")
        return users

    def create_accounts(self):
        cash, _ = Account.objects.get_or_create(
            account_name=settings.CASHBOOK_ACCOUNT_NAME,
            defaults={
                'account_code': '1110',
                'opening_balance': Decimal('25000.00'),
                'opening_balance_type': Account.DR,
            },
        )
        income, _ = Account.objects.get_or_create(
            account_name='Hospital Service Income',
            defaults={'account_code': '4100', 'opening_balance_type': Account.CR},
        )
        expense, _ = Account.objects.get_or_create(
            account_name='General Expenses',
            defaults={'account_code': '5100', 'opening_balance_type': Account.DR},
        )
        return {'cash': cash, 'income': income, 'expense': expense}

    def create_voucher_types(self):
        types = {}
        for name, category, code in VOUCHER_TYPES:
            vt, _ = VoucherType.objects.get_or_create(
                voucher_type_code=code,
                defaults={'voucher_type_name': name, 'voucher_category': category},
            )
            types[category] = vt
        return types

    def create_patients(self):
        return [Patient.objects.get_or_create(name=name)[0] for name in PATIENT_NAMES]

    def create_vouchers(self, count, users, accounts, voucher_types, patients):
        start = timezone.localdate() - timedelta(days=count)
        base = Voucher.objects.count()
        for i in range(count):
            receipt = random.random() < 0.6
            vtype = voucher_types['RECEIPT' if receipt else 'PAYMENT']
            amount = Decimal(random.randrange(200, 5000, 50))
            status = random.choices(
                [Voucher.STATUS_AUTHORISED, Voucher.STATUS_DRAFT, Voucher.STATUS_CANCELLED],
                weights=[8, 1, 1],
            )[0]
            voucher = Voucher.objects.create(
                voucher_number=f"{vtype.voucher_type_code}-{base + i + 1:05d}",
                voucher_date=start + timedelta(days=i),
                status=status,
                voucher_type=vtype,
                patient=random.choice(patients) if receipt else None,
                created_by=random.choice(users),
                narration='Consultation and diagnostics fee' if receipt else 'Petty cash expense',
            )
            other = accounts['income'] if receipt else accounts['expense']
            cash_side = {'debit_amount': amount, 'credit_amount': Decimal('0')} if receipt \
                else {'debit_amount': Decimal('0'), 'credit_amount': amount}
            other_side = {'debit_amount': cash_side['credit_amount'], 'credit_amount': cash_side['debit_amount']}
            VoucherEntry.objects.create(voucher=voucher, account=accounts['cash'],
                                        narration='Cash', **cash_side)
            VoucherEntry.objects.create(voucher=voucher, account=other,
                                        narration=other.account_name, **other_side)
        return count

    def create_radiology_tests(self):
        created = 0
        for name, category, rate in RADIOLOGY_TESTS:
            RadiologySubSpecialty.objects.get_or_create(name=category)
            _, was_created = RadiologyTest.objects.get_or_create(
                name=name,
                defaults={
                    'category': category,
                    'description': 'Radiology examination',
                    'cost': DEFAULT_COST,
                    'private_rate': Decimal(rate),
                    'nabh_nabl_rate': Decimal(rate) * Decimal('0.85'),
                    'non_nabh_nabl_rate': Decimal(rate) * Decimal('0.75'),
                    'bhopal_nabh_rate': Decimal(rate) * Decimal('0.80'),
                    'bhopal_non_nabh_rate': Decimal(rate) * Decimal('0.70'),
                },
            )
            created += int(was_created)
        return created
