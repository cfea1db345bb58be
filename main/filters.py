from decimal import Decimal

from rest_framework import serializers
from rest_framework.exceptions import ValidationError

from users.serializers import CoordinatesSerializer


class QueryParamsSerializer(serializers.Serializer):
    """
    Typed view of the query-string filters shared by the list endpoints.

    Every field is optional. A malformed value becomes a 400 with the
    offending parameter as the key.
    """
    store = serializers.IntegerField(required=False, min_value=1)
    customer = serializers.IntegerField(required=False, min_value=1)
    product = serializers.IntegerField(required=False, min_value=1)
    limit = serializers.IntegerField(required=False, min_value=1)
    min_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    max_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    min_rating = serializers.DecimalField(
        max_digits=3, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('5'), required=False
    )
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    radius = serializers.FloatField(required=False, min_value=0)


def query_params(request):
    """Validated filters from the request; blank values count as absent."""
    data = {key: value for key, value in request.query_params.items() if value != ''}
    serializer = QueryParamsSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def parse_location(params, radius_default):
    """Read lat/lng/radius query params; raises ValidationError when invalid."""
    location = CoordinatesSerializer(data=params)
    location.is_valid(raise_exception=True)
    try:
        radius = float(params.get('radius') or radius_default)
    except ValueError:
        raise ValidationError({'radius': 'Radius must be a number'})
    return dict(location.validated_data), radius
