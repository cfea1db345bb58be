from rest_framework import status
from rest_framework.exceptions import APIException


class OrderError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Order request could not be processed'
    default_code = 'order_error'


class InvalidStatusTransition(OrderError):
    default_code = 'invalid_status_transition'

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f'Cannot change order status from {current} to {target}')


class StoreUnavailable(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Store not found or inactive'
    default_code = 'store_unavailable'


class StoreClosed(OrderError):
    default_detail = 'Store is currently closed'
    default_code = 'store_closed'


class ProductUnavailable(OrderError):
    default_code = 'product_unavailable'


class InsufficientStock(OrderError):
    default_code = 'insufficient_stock'


class MinimumOrderNotMet(OrderError):
    default_code = 'minimum_order_not_met'

    def __init__(self, minimum):
        super().__init__(f'Minimum order amount is ₹{minimum}')


class DeliveryAssignmentError(OrderError):
    default_code = 'delivery_assignment_error'
