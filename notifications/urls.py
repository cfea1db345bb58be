from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    path('', views.NotificationListView.as_view(), name='list'),
    path('unread-count/', views.notification_unread_count, name='unread-count'),
    path('mark-all-read/', views.mark_all_notifications_read, name='mark-all-read'),
    path('clear-read/', views.clear_read_notifications, name='clear-read'),
    path('<int:pk>/read/', views.mark_notification_read, name='mark-read'),
    path('<int:pk>/', views.delete_notification, name='delete'),
]
