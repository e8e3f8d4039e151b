"""
Radiology test catalog.

Tests are shared by every hospital, so nothing here is scoped by
hospital.  Listing is done over the full catalog ordered by name:
search narrows it by name and the result is cut into fixed pages of
``PAGE_SIZE`` with a sliding window of page numbers for the pager.
"""
from __future__ import annotations

import html
import logging
import os
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

import bleach
from django.conf import settings
from django.core.paginator import Paginator
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from backoffice.models import RadiologySubSpecialty, RadiologyTest, User
from backoffice.services.audit import log_action

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
PAGE_WINDOW = 5
CODE_MAX_LENGTH = 20

DEFAULT_CATEGORY = 'General'
DEFAULT_TESTING_METHOD = 'Radiology'
DEFAULT_COST = '₹500'

TARIFFS = ('Private', 'Government', 'Insurance', 'Corporate')
IMPORT_EXTENSIONS = ('.csv', '.xlsx', '.xls')

# model field -> accepted request keys (camelCase from the form first)
RATE_FIELDS = [
    ('nabh_nabl_rate', ['nabhNablRate', 'nabh_nabl_rate']),
    ('non_nabh_nabl_rate', ['nonNabhNablRate', 'non_nabh_nabl_rate']),
    ('private_rate', ['private', 'privateRate', 'private_rate']),
    ('bhopal_nabh_rate', ['bhopalNabh', 'bhopal_nabh', 'bhopal_nabh_rate']),
    ('bhopal_non_nabh_rate', ['bhopalNonNabh', 'bhopal_non_nabh', 'bhopal_non_nabh_rate']),
]

_NON_ALNUM = re.compile(r'[\W_]+')
_CENTS = Decimal('0.01')


def radiology_code(name: Optional[str]) -> str:
    """Display code: upper case, non-alphanumeric runs collapsed to ``_``, max 20 chars."""
    return _NON_ALNUM.sub('_', (name or '').upper())[:CODE_MAX_LENGTH]


def parse_rate(value: Any) -> Decimal:
    """Parse a tariff rate; blank or unparsable input counts as 0."""
    if value is None:
        return Decimal('0')
    try:
        rate = Decimal(str(value).strip())
        if not rate.is_finite():
            return Decimal('0')
        return rate.quantize(_CENTS)
    except InvalidOperation:
        return Decimal('0')


def _clean(value: Any) -> str:
    """Plain text: every tag stripped, entities decoded back to characters."""
    return html.unescape(bleach.clean(str(value or '').strip(), tags=set(), strip=True)).strip()


def _first(data, *keys):
    for k in keys:
        if k in data:
            return data[k]
    return None


def serialize_test(test: RadiologyTest) -> dict:
    return {
        'id': test.id,
        'name': test.name,
        'code': radiology_code(test.name),
        'is_active': True,
        'category': test.category,
        'body_part': test.category,
        'study_type': 'routine',
        'description': test.description,
        'cost': test.cost,
        'created_at': test.created_at.isoformat() if test.created_at else None,
        'nabhNablRate': test.nabh_nabl_rate or Decimal('0'),
        'nonNabhNablRate': test.non_nabh_nabl_rate or Decimal('0'),
        'private': test.private_rate or Decimal('0'),
        'bhopal_nabh': test.bhopal_nabh_rate or Decimal('0'),
        'bhopal_non_nabh': test.bhopal_non_nabh_rate or Decimal('0'),
    }


def catalog_fields(data) -> dict:
    """Map submitted form data onto model fields.

    Every rate is always written, so a rate left out of the form resets
    to 0 on update exactly as it does on create.
    """
    name = _clean(data.get('name'))
    if not name:
        raise ValidationError({'name': 'Test name is required.'})
    testing_method = _clean(_first(data, 'testingMethod', 'testing_method')) or DEFAULT_TESTING_METHOD
    fields = {
        'name': name,
        'category': _clean(_first(data, 'subSpecialty', 'sub_specialty', 'category')) or DEFAULT_CATEGORY,
        'description': _clean(_first(data, 'note', 'description')) or f'{testing_method} examination',
    }
    for field, keys in RATE_FIELDS:
        fields[field] = parse_rate(_first(data, *keys))
    return fields


def get_test_or_404(test_id) -> RadiologyTest:
    test = RadiologyTest.objects.filter(id=test_id).first()
    if not test:
        raise NotFound('radiology test not found')
    return test


def create_test(data, user: Optional[User] = None) -> RadiologyTest:
    fields = catalog_fields(data)
    with transaction.atomic():
        test = RadiologyTest.objects.create(cost=DEFAULT_COST, **fields)
        log_action(user=user, action='radiology_create', object_type='radiology_test',
                   object_id=test.id, detail={'name': test.name})
    logger.info('Radiology test %s created: %s', test.id, test.name)
    return test


def update_test(test_id, data, user: Optional[User] = None) -> RadiologyTest:
    test = get_test_or_404(test_id)
    fields = catalog_fields(data)
    with transaction.atomic():
        for field, value in fields.items():
            setattr(test, field, value)
        test.save()
        log_action(user=user, action='radiology_update', object_type='radiology_test',
                   object_id=test.id, detail={'name': test.name})
    logger.info('Radiology test %s updated', test.id)
    return test


def delete_test(test_id, user: Optional[User] = None, *, confirmed: bool = False) -> None:
    """Delete a test; refused unless the operator confirmed it."""
    test = get_test_or_404(test_id)
    if not confirmed:
        raise ValidationError({'confirm': f'Are you sure you want to delete "{test.name}"? Resend with confirm=true.'})
    with transaction.atomic():
        log_action(user=user, action='radiology_delete', object_type='radiology_test',
                   object_id=test.id, detail={'name': test.name})
        test.delete()
    logger.info('Radiology test %s deleted', test_id)


def search_tests(tests: Iterable[RadiologyTest], term: Optional[str]) -> list[RadiologyTest]:
    if not term:
        return list(tests)
    needle = term.casefold()
    return [t for t in tests if needle in (t.name or '').casefold()]


def page_window(current: int, total_pages: int, width: int = PAGE_WINDOW) -> list[int]:
    """Page numbers to show: first pages near the start, last near the end, else centred."""
    if total_pages <= width:
        return list(range(1, total_pages + 1))
    half = width // 2
    if current <= half + 1:
        return list(range(1, width + 1))
    if current >= total_pages - half:
        return list(range(total_pages - width + 1, total_pages + 1))
    return list(range(current - half, current + half + 1))


def paginate(items, page=1, page_size: int = PAGE_SIZE) -> dict:
    paginator = Paginator(items, page_size)
    total = paginator.count
    total_pages = paginator.num_pages if total else 0
    page_obj = paginator.get_page(page)
    return {
        'items': list(page_obj.object_list),
        'total': total,
        'page': page_obj.number,
        'pageSize': page_size,
        'totalPages': total_pages,
        'pageNumbers': page_window(page_obj.number, total_pages),
    }


def import_tests(upload, tariff: Optional[str], user: Optional[User] = None) -> dict:
    """Accept a tariff sheet upload.

    Only the upload itself is validated and acknowledged; rows are not
    read into the catalog.
    """
    if upload is None:
        raise ValidationError({'file': 'Please select a file to import.'})
    filename = getattr(upload, 'name', '') or ''
    ext = os.path.splitext(filename)[1].lower()
    if ext not in IMPORT_EXTENSIONS:
        raise ValidationError({'file': f'Unsupported file type. Allowed: {", ".join(IMPORT_EXTENSIONS)}'})
    size = getattr(upload, 'size', 0) or 0
    if size > settings.UPLOAD_MAX_MB * 1024 * 1024:
        raise ValidationError({'file': f'File too large (max {settings.UPLOAD_MAX_MB} MB).'})
    tariff = tariff or TARIFFS[0]
    if tariff not in TARIFFS:
        raise ValidationError({'tariff': f'Unknown tariff "{tariff}".'})

    log_action(user=user, action='radiology_import', object_type='radiology_test',
               detail={'file': filename, 'tariff': tariff, 'size': size})
    logger.info('Radiology import received: %s (%s bytes) for tariff %s', filename, size, tariff)
    return {'file': filename, 'tariff': tariff, 'size': size}


def add_sub_specialty(name: Any, user: Optional[User] = None) -> tuple[RadiologySubSpecialty, bool]:
    name = _clean(name)
    if not name:
        raise ValidationError({'name': 'Sub specialty name is required.'})
    sub, created = RadiologySubSpecialty.objects.get_or_create(name=name)
    if created:
        log_action(user=user, action='radiology_sub_specialty_create', object_type='radiology_sub_specialty',
                   object_id=sub.id, detail={'name': name})
    return sub, created
