from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    path('create-order/', views.create_payment_order, name='create-order'),
    path('verify/', views.verify_payment, name='verify'),
    path('refund/', views.refund_payment, name='refund'),
    path('order/<int:order_id>/', views.payment_details, name='payment-details'),
    path('history/', views.payment_history, name='history'),
    path('analytics/', views.payment_analytics, name='analytics'),
    path('webhook/', views.webhook, name='webhook'),
]
