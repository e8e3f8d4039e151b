"""
URL mappings for the back-office API.

Paths follow the front-end's endpoint table; trailing slashes are
deliberately omitted (``APPEND_SLASH = False``).
"""
from django.urls import path, include

from .views import health
from .views.cashbook import cash_balance, cash_book_entries, cash_book_users, cash_book_voucher_types
from .views.radiology import (
    list_tests,
    create_test,
    update_test,
    delete_test,
    import_tests,
    add_sub_specialty,
)


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Cash book
    path('api/cashbook/balance', cash_balance, name='cash_balance'),
    path('api/cashbook/entries', cash_book_entries, name='cash_book_entries'),
    path('api/cashbook/users', cash_book_users, name='cash_book_users'),
    path('api/cashbook/voucher-types', cash_book_voucher_types, name='cash_book_voucher_types'),
    # Radiology catalog
    path('api/radiology/tests', list_tests, name='radiology_tests'),
    path('api/radiology/tests/create', create_test, name='radiology_test_create'),
    path('api/radiology/tests/<int:pk>/update', update_test, name='radiology_test_update'),
    path('api/radiology/tests/<int:pk>/delete', delete_test, name='radiology_test_delete'),
    path('api/radiology/import', import_tests, name='radiology_import'),
    path('api/radiology/sub-specialties', add_sub_specialty, name='radiology_sub_specialties'),
]
