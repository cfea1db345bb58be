from django.urls import path
from . import views

urlpatterns = [
    path('transactions/', views.StockTransactionListView.as_view(), name='stock-transaction-list'),
]
