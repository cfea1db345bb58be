from django.urls import path
from . import views

app_name = 'delivery'

urlpatterns = [
    path('available-orders/', views.available_orders, name='available-orders'),
    path('my-deliveries/', views.my_deliveries, name='my-deliveries'),
    path('accept-order/', views.accept_order, name='accept-order'),
    path('update-location/', views.update_location, name='update-location'),
    path('start-delivery/', views.start_delivery, name='start-delivery'),
    path('complete-delivery/', views.complete_delivery, name='complete-delivery'),
    path('route-optimization/', views.route_optimization, name='route-optimization'),
    path('earnings/', views.earnings, name='earnings'),
]
