from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from main.pagination import StandardPagination
from .models import Notification
from .serializers import NotificationSerializer


class NotificationPagination(StandardPagination):
    page_size = 20


def own_notifications(user):
    return Notification.objects.filter(user=user)


def unread_count(user):
    return own_notifications(user).filter(is_read=False).count()


class NotificationListView(generics.ListAPIView):
    """
    Notifications of the current user, newest first.

    Filters: ``type``, ``is_read`` and ``order_number`` for everything
    raised about one order.
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = NotificationPagination

    def get_queryset(self):
        queryset = own_notifications(self.request.user)
        params = self.request.query_params

        notification_type = params.get('type')
        if notification_type:
            queryset = queryset.filter(type=notification_type.upper())

        is_read = params.get('is_read')
        if is_read is not None:
            queryset = queryset.filter(is_read=is_read.lower() == 'true')

        order_number = params.get('order_number')
        if order_number:
            queryset = queryset.filter(data__order_number=order_number)

        return queryset


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    return Response({'unread_count': unread_count(request.user)})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, pk):
    notification = get_object_or_404(own_notifications(request.user), pk=pk)
    notification.mark_as_read()
    return Response({
        'notification': NotificationSerializer(notification).data,
        'unread_count': unread_count(request.user),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_all_notifications_read(request):
    updated_count = own_notifications(request.user).filter(is_read=False).update(
        is_read=True,
        read_at=timezone.now()
    )
    return Response({
        'message': f'Marked {updated_count} notifications as read',
        'updated_count': updated_count,
    })


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_notification(request, pk):
    notification = get_object_or_404(own_notifications(request.user), pk=pk)
    notification.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def clear_read_notifications(request):
    """Delete every notification the user has already read."""
    deleted, _ = own_notifications(request.user).filter(is_read=True).delete()
    return Response({'message': f'Deleted {deleted} read notifications', 'deleted_count': deleted})
