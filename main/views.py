from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from integrations.health import aws_status, database_status


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([])
def health_check(request):
    """
    Health check endpoint for container orchestration.
    Healthy only while the database answers; AWS services are reported but optional.
    """
    database = database_status()
    healthy = database['connected']
    return Response(
        {
            'status': 'healthy' if healthy else 'unhealthy',
            'timestamp': timezone.now().isoformat(),
            'database': database,
            'aws': aws_status(),
        },
        status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    )


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def api_status(request):
    return Response({
        'service': 'grocery-marketplace-api',
        'version': settings.API_VERSION,
        'environment': settings.ENVIRONMENT,
        'timestamp': timezone.now().isoformat(),
        'database': database_status(),
        'aws': aws_status(),
    })
