from rest_framework import status
from rest_framework.exceptions import APIException, NotFound
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response


class AccountNotFound(NotFound):
    default_detail = 'Account not found.'
    default_code = 'account_not_found'


class AccountInactive(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Account is inactive.'
    default_code = 'account_inactive'


class LedgerStoreError(APIException):
    """The database rejected a ledger query; the driver message is kept verbatim."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Database error.'
    default_code = 'store_error'


def _error_code(exc) -> str:
    if isinstance(exc, APIException):
        return getattr(exc.detail, 'code', None) or exc.default_code
    return 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    elif isinstance(resp.data, list):
        detail = '; '.join(str(d) for d in resp.data)
    else:
        detail = str(resp.data)
    # keep auth and throttle headers drf already set
    resp.data = {'ok': False, 'error': {'code': _error_code(exc), 'message': detail}}
    return resp
