"""
Radiology test catalog endpoints.

Any authenticated user may browse the catalog; administrators maintain
it.  The listing is searched by name and paged ten tests at a time,
with the page numbers the pager should show included in the response.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from ..models import RadiologyTest
from ..permissions import IsAdminRole
from ..serializers.radiology import RadiologyListQuerySerializer, RadiologyImportSerializer, SubSpecialtySerializer
from ..services import radiology


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_tests(request):
    """Return one page of radiology tests.

    Query params:
      - q: optional name search (case-insensitive)
      - page: 1-based page number, clamped to the available pages
    """
    q = RadiologyListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    tests = radiology.search_tests(RadiologyTest.objects.order_by('name'), q.validated_data.get('q'))
    page = radiology.paginate(tests, q.validated_data.get('page') or 1)
    return Response({
        'ok': True,
        'data': [radiology.serialize_test(t) for t in page.pop('items')],
        'pagination': page,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def create_test(request):
    test = radiology.create_test(request.data, request.user)
    return Response({'ok': True, 'data': radiology.serialize_test(test)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def update_test(request, pk: int):
    """Replace a test's name, sub specialty, description and rates.

    Rates missing from the request are stored as 0.
    """
    test = radiology.update_test(pk, request.data, request.user)
    return Response({'ok': True, 'data': radiology.serialize_test(test)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def delete_test(request, pk: int):
    """Delete a test.  The client must pass ``confirm=true`` after asking the operator."""
    confirmed = str(request.data.get('confirm') or request.query_params.get('confirm') or '').lower() == 'true'
    radiology.delete_test(pk, request.user, confirmed=confirmed)
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def import_tests(request):
    """Receive a tariff sheet (.csv/.xlsx/.xls) for the selected tariff."""
    s = RadiologyImportSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = radiology.import_tests(s.validated_data.get('file'), s.validated_data.get('tariff'), request.user)
    return Response({'ok': True, 'data': result}, status=status.HTTP_202_ACCEPTED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def add_sub_specialty(request):
    s = SubSpecialtySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    sub, created = radiology.add_sub_specialty(s.validated_data['name'], request.user)
    return Response({'ok': True, 'id': sub.id, 'name': sub.name},
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)
