from django.urls import path
from . import views

app_name = 'analytics'

urlpatterns = [
    path('dashboard/', views.dashboard, name='dashboard'),
    path('sales/', views.sales, name='sales'),
    path('revenue/', views.revenue, name='revenue'),
    path('products/', views.products, name='products'),
    path('customers/', views.customers, name='customers'),
    path('delivery/', views.delivery, name='delivery'),
]
