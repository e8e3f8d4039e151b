"""
Database models for the hospital back office.

These models capture the two areas the back office manages: the
chart of accounts with its vouchers (read by the cash book) and the
radiology test catalog.  Field names follow the columns the front-end
already expects so that views can map rows to JSON without renaming.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Back-office user with a role.

    ``accounts`` users may read the cash book, ``admin`` users may also
    maintain the radiology catalog and ``super`` may do everything.
    """
    ROLE_CHOICES = [
        ('staff', 'Staff'),
        ('accounts', 'Accounts'),
        ('admin', 'Administrator'),
        ('super', 'Super Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='staff')

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Account(models.Model):
    """A ledger account in the chart of accounts.

    Accounts are provisioned out-of-band; the cash book only reads them.
    An inactive account must never be queried for entries.
    """
    DR = 'DR'
    CR = 'CR'
    BALANCE_TYPE_CHOICES = ((DR, 'Debit'), (CR, 'Credit'))

    account_name = models.CharField(max_length=255, unique=True)
    account_code = models.CharField(max_length=20, blank=True)
    opening_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    opening_balance_type = models.CharField(max_length=2, choices=BALANCE_TYPE_CHOICES, default=DR)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.account_name} ({self.account_code})"


class VoucherType(models.Model):
    voucher_type_name = models.CharField(max_length=100)
    voucher_category = models.CharField(max_length=50, db_index=True)
    voucher_type_code = models.CharField(max_length=20, blank=True)

    def __str__(self) -> str:
        return self.voucher_type_name


class Patient(models.Model):
    """Minimal patient record a voucher may be raised against."""
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Voucher(models.Model):
    STATUS_DRAFT = 'DRAFT'
    STATUS_AUTHORISED = 'AUTHORISED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_CHOICES = (
        (STATUS_DRAFT, 'Draft'),
        (STATUS_AUTHORISED, 'Authorised'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    voucher_number = models.CharField(max_length=50, blank=True)
    voucher_date = models.DateField(db_index=True)
    # Only authorised vouchers reach the cash book; index to keep the filter cheap
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    voucher_type = models.ForeignKey(
        VoucherType, null=True, blank=True, on_delete=models.SET_NULL, related_name='vouchers'
    )
    patient = models.ForeignKey(
        Patient, null=True, blank=True, on_delete=models.SET_NULL, related_name='vouchers'
    )
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='vouchers_created'
    )
    narration = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'voucher_date'], name='voucher_status_date_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.voucher_number or self.pk} ({self.status})"


class VoucherEntry(models.Model):
    """One debit or credit line of a voucher against a single account."""
    voucher = models.ForeignKey(Voucher, on_delete=models.CASCADE, related_name='entries')
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='entries')
    debit_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True, default=Decimal('0'))
    credit_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True, default=Decimal('0'))
    narration = models.TextField(blank=True, null=True)

    class Meta:
        verbose_name_plural = 'voucher entries'
        indexes = [
            models.Index(fields=['account', 'voucher'], name='entry_account_voucher_idx'),
        ]

    def __str__(self) -> str:
        return f"entry {self.pk} voucher={self.voucher_id} account={self.account_id}"


class RadiologySubSpecialty(models.Model):
    name = models.CharField(max_length=255, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = 'radiology sub specialties'

    def __str__(self) -> str:
        return self.name


class RadiologyTest(models.Model):
    """A priced radiology test shared by every hospital.

    The display ``code`` is derived from ``name`` when the record is
    read (see :func:`backoffice.services.radiology.radiology_code`) and
    is never stored.
    """
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=255, default='General')
    description = models.TextField(blank=True)
    cost = models.CharField(max_length=50, blank=True)
    nabh_nabl_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    non_nabh_nabl_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    private_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    bhopal_nabh_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    bhopal_non_nabh_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]
