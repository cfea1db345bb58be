from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    path('', views.OrderListCreateView.as_view(), name='order-list-create'),
    path('tracking/<str:order_number>/', views.track_order, name='order-tracking'),
    path('<int:pk>/', views.order_detail, name='order-detail'),
    path('<int:pk>/status/', views.update_order_status, name='order-status'),
    path('<int:pk>/assign-delivery/', views.assign_delivery, name='order-assign-delivery'),
    path('<int:pk>/cancel/', views.cancel, name='order-cancel'),
    path('<int:pk>/rate/', views.rate, name='order-rate'),
]
