from django.urls import path
from . import views

urlpatterns = [
    # Own profile
    path('profile/', views.profile_view, name='user-profile'),
    path('profile/avatar/', views.upload_avatar_view, name='user-avatar'),
    path('password/', views.change_password_view, name='change-password'),

    # Delivery partner lookup (store owners, admins)
    path('delivery-partners/', views.delivery_partners_view, name='delivery-partners'),

    # User management (Admin only)
    path('', views.UserListView.as_view(), name='user-list'),
    path('<int:pk>/', views.UserDetailView.as_view(), name='user-detail'),
]
