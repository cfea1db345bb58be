from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from main.filters import query_params
from users.permissions import IsStoreOwnerOrAdmin
from .models import StockTransaction
from .serializers import StockTransactionSerializer


class StockTransactionListView(generics.ListAPIView):
    """Stock movements for the caller's stores (all stores for admins)"""
    queryset = StockTransaction.objects.select_related('product', 'performed_by').all()
    serializer_class = StockTransactionSerializer
    permission_classes = [IsAuthenticated, IsStoreOwnerOrAdmin]

    def get_queryset(self):
        queryset = super().get_queryset()
        user = self.request.user

        if not user.is_admin:
            queryset = queryset.filter(product__store__owner=user)

        filters = query_params(self.request)

        # Filter by product
        if 'product' in filters:
            queryset = queryset.filter(product_id=filters['product'])

        # Filter by store
        if 'store' in filters:
            queryset = queryset.filter(product__store_id=filters['store'])

        # Filter by transaction type
        transaction_type = self.request.query_params.get('type', None)
        if transaction_type:
            queryset = queryset.filter(transaction_type=transaction_type.upper())

        # Filter by date range
        if 'start_date' in filters:
            queryset = queryset.filter(created_at__date__gte=filters['start_date'])
        if 'end_date' in filters:
            queryset = queryset.filter(created_at__date__lte=filters['end_date'])

        return queryset
