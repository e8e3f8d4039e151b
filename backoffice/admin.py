"""
Django admin registrations for the back-office models.

Accounts and vouchers are posted by the accounting workflow, so the
cash book itself never writes them; the admin is where they are
inspected and, during development, entered by hand.
"""

from django.contrib import admin

from .models import (
    User,
    Account,
    VoucherType,
    Patient,
    Voucher,
    VoucherEntry,
    RadiologySubSpecialty,
    RadiologyTest,
    AuditEvent,
)
from .services.radiology import radiology_code


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ('account_name', 'account_code', 'opening_balance', 'opening_balance_type', 'is_active')
    list_filter = ('opening_balance_type', 'is_active')
    search_fields = ('account_name', 'account_code')


@admin.register(VoucherType)
class VoucherTypeAdmin(admin.ModelAdmin):
    list_display = ('voucher_type_name', 'voucher_category', 'voucher_type_code')
    search_fields = ('voucher_type_name', 'voucher_category')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'created_at')
    search_fields = ('name',)


class VoucherEntryInline(admin.TabularInline):
    model = VoucherEntry
    extra = 0


@admin.register(Voucher)
class VoucherAdmin(admin.ModelAdmin):
    list_display = ('voucher_number', 'voucher_date', 'status', 'voucher_type', 'patient', 'created_by')
    list_filter = ('status', 'voucher_type')
    search_fields = ('voucher_number', 'narration')
    date_hierarchy = 'voucher_date'
    inlines = [VoucherEntryInline]


@admin.register(RadiologySubSpecialty)
class RadiologySubSpecialtyAdmin(admin.ModelAdmin):
    list_display = ('name', 'created_at')
    search_fields = ('name',)


@admin.register(RadiologyTest)
class RadiologyTestAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'category', 'private_rate', 'nabh_nabl_rate', 'created_at')
    list_filter = ('category',)
    search_fields = ('name',)

    @admin.display(description='Code')
    def code(self, obj):
        return radiology_code(obj.name)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
