from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for Notification model."""

    type_display = serializers.CharField(source='get_type_display', read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id', 'type', 'type_display', 'title', 'message',
            'data', 'is_read', 'created_at', 'read_at'
        ]
        read_only_fields = ['id', 'type', 'title', 'message', 'data', 'created_at']
