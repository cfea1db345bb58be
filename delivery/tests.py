"""
Tests for the Delivery module.
Covers: distance helpers, route building and the delivery partner workflow.
"""
import pytest
from rest_framework import status

from conftest import move_order
from orders.models import Order
from users.models import User
from delivery.routing import (
    RoutePoint, estimated_minutes, haversine_km, has_coordinates, nearest_neighbor_route, route_length_km
)

Status = Order.Status
RIDER_AT_STORE = {'lat': 20.2961, 'lng': 85.8245}


# ============== Routing Tests ==============

class TestHaversine:

    def test_same_point(self):
        assert haversine_km(RIDER_AT_STORE, RIDER_AT_STORE) == 0

    def test_known_distance(self):
        bhubaneswar = {'lat': 20.2961, 'lng': 85.8245}
        cuttack = {'lat': 20.4625, 'lng': 85.8830}
        assert 19 < haversine_km(bhubaneswar, cuttack) < 20

    def test_symmetric(self):
        a, b = {'lat': 20.2961, 'lng': 85.8245}, {'lat': 20.3538, 'lng': 85.8192}
        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))

    def test_has_coordinates(self):
        assert has_coordinates({'lat': 0, 'lng': 0})
        assert not has_coordinates({'lat': 20.1})
        assert not has_coordinates(None)


class TestNearestNeighborRoute:

    def points(self):
        return [
            RoutePoint(kind='delivery', coordinates={'lat': 20.40, 'lng': 85.82}, order_id=1),
            RoutePoint(kind='pickup', coordinates={'lat': 20.30, 'lng': 85.82}, order_id=1),
            RoutePoint(kind='delivery', coordinates={'lat': 20.35, 'lng': 85.82}, order_id=2),
        ]

    def test_visits_every_point_once_in_greedy_order(self):
        start = RoutePoint(kind='start', coordinates={'lat': 20.29, 'lng': 85.82})
        points = self.points()
        route = nearest_neighbor_route(start, points)

        assert route[0] is start
        assert route[1:] == [points[1], points[2], points[0]]

    def test_empty(self):
        start = RoutePoint(kind='start', coordinates=RIDER_AT_STORE)
        route = nearest_neighbor_route(start, [])
        assert route == [start]
        assert route_length_km(route) == 0

    def test_route_length_is_sum_of_legs(self):
        start = RoutePoint(kind='start', coordinates={'lat': 20.29, 'lng': 85.82})
        route = nearest_neighbor_route(start, self.points())
        expected = haversine_km(route[0].coordinates, route[-1].coordinates)
        assert route_length_km(route) == pytest.approx(expected, rel=1e-3)

    def test_estimated_minutes_rounds_up(self):
        assert estimated_minutes(10, 20) == 30
        assert estimated_minutes(0.1, 20) == 1

    def test_as_dict_flattens_details(self):
        point = RoutePoint(kind='delivery', coordinates=RIDER_AT_STORE, name='Asha',
                           order_id=3, order_number='BBSR2401010003', details={'address': {'city': 'BBSR'}})
        assert point.as_dict() == {
            'type': 'delivery',
            'coordinates': RIDER_AT_STORE,
            'name': 'Asha',
            'order_id': 3,
            'order_number': 'BBSR2401010003',
            'address': {'city': 'BBSR'},
        }


# ============== Available Orders Tests ==============

@pytest.mark.django_db
class TestAvailableOrders:

    def test_lists_ready_unassigned_orders_with_distances(self, partner_client, order):
        move_order(order, Status.READY_FOR_PICKUP)
        response = partner_client.get('/api/delivery/available-orders/', RIDER_AT_STORE)
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1

        listed = response.data['orders'][0]
        assert listed['id'] == order.pk
        assert listed['store_distance'] == 0
        assert listed['delivery_distance'] > 0
        assert listed['total_distance'] == listed['delivery_distance']

    def test_excludes_orders_not_ready(self, partner_client, order):
        response = partner_client.get('/api/delivery/available-orders/', RIDER_AT_STORE)
        assert response.data['count'] == 0

    def test_excludes_assigned_orders(self, partner_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        move_order(order, Status.READY_FOR_PICKUP)
        response = partner_client.get('/api/delivery/available-orders/', RIDER_AT_STORE)
        assert response.data['count'] == 0

    def test_excludes_stores_outside_radius(self, partner_client, order):
        move_order(order, Status.READY_FOR_PICKUP)
        response = partner_client.get('/api/delivery/available-orders/', {
            'lat': 19.0760, 'lng': 72.8777, 'radius': 10
        })
        assert response.data['count'] == 0

    def test_requires_location(self, partner_client, db):
        response = partner_client.get('/api/delivery/available-orders/')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_limit_must_be_a_number(self, partner_client, db):
        response = partner_client.get('/api/delivery/available-orders/', {**RIDER_AT_STORE, 'limit': 'x'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'limit' in response.data

    def test_only_delivery_partners(self, customer_client):
        response = customer_client.get('/api/delivery/available-orders/', RIDER_AT_STORE)
        assert response.status_code == status.HTTP_403_FORBIDDEN


# ============== Delivery Workflow Tests ==============

@pytest.mark.django_db
class TestDeliveryWorkflow:

    def test_accept_start_and_complete(self, partner_client, delivery_partner, order, product):
        move_order(order, Status.READY_FOR_PICKUP)

        response = partner_client.post('/api/delivery/accept-order/', {
            'order_id': order.pk,
            'current_location': {'lat': 20.2970, 'lng': 85.8250},
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['delivery_partner']['id'] == delivery_partner.pk
        delivery_partner.refresh_from_db()
        assert delivery_partner.current_location == {'lat': 20.2970, 'lng': 85.8250}

        response = partner_client.post('/api/delivery/start-delivery/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['status'] == Status.OUT_FOR_DELIVERY

        response = partner_client.post('/api/delivery/complete-delivery/', {
            'order_id': order.pk, 'notes': 'Left with security'
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['status'] == Status.DELIVERED
        assert response.data['order']['actual_delivery_time'] is not None
        assert 'Left with security' in response.data['order']['notes']

    def test_cannot_accept_order_taken_by_someone_else(self, partner_client, order):
        other = User.objects.create_user(
            email='rider2@test.com', password='testpass123', name='Second Rider',
            phone='9000000009', role=User.Role.DELIVERY_PARTNER
        )
        Order.objects.filter(pk=order.pk).update(delivery_partner=other)
        move_order(order, Status.READY_FOR_PICKUP)

        response = partner_client.post('/api/delivery/accept-order/', {
            'order_id': order.pk, 'current_location': RIDER_AT_STORE,
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Order is already assigned to another delivery partner'

    def test_cannot_accept_order_not_ready(self, partner_client, order):
        response = partner_client.post('/api/delivery/accept-order/', {
            'order_id': order.pk, 'current_location': RIDER_AT_STORE,
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Order is not ready for delivery'

    def test_cannot_accept_from_too_far(self, partner_client, order):
        move_order(order, Status.READY_FOR_PICKUP)
        response = partner_client.post('/api/delivery/accept-order/', {
            'order_id': order.pk, 'current_location': {'lat': 19.0760, 'lng': 72.8777},
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_start_requires_assignment(self, partner_client, order):
        move_order(order, Status.READY_FOR_PICKUP)
        response = partner_client.post('/api/delivery/start-delivery/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_complete_requires_out_for_delivery(self, partner_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        move_order(order, Status.READY_FOR_PICKUP)
        response = partner_client.post('/api/delivery/complete-delivery/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Order is not out for delivery'

    def test_my_deliveries(self, partner_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        response = partner_client.get('/api/delivery/my-deliveries/')
        assert response.status_code == status.HTTP_200_OK
        assert [o['id'] for o in response.data['results']] == [order.pk]

    def test_update_location(self, partner_client, delivery_partner):
        response = partner_client.post('/api/delivery/update-location/', {'lat': 20.31, 'lng': 85.83}, format='json')
        assert response.status_code == status.HTTP_200_OK
        delivery_partner.refresh_from_db()
        assert delivery_partner.current_location == {'lat': 20.31, 'lng': 85.83}

    def test_update_location_validates_range(self, partner_client):
        response = partner_client.post('/api/delivery/update-location/', {'lat': 91, 'lng': 85.83}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


# ============== Route and Earnings Tests ==============

@pytest.mark.django_db
class TestRouteOptimization:

    def test_route_covers_pickup_and_drop_off(self, partner_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        move_order(order, Status.OUT_FOR_DELIVERY)

        response = partner_client.get('/api/delivery/route-optimization/', RIDER_AT_STORE)
        assert response.status_code == status.HTTP_200_OK
        assert [point['type'] for point in response.data['route']] == ['start', 'pickup', 'delivery']
        assert response.data['order_count'] == 1
        assert response.data['total_distance'] > 0
        assert response.data['estimated_time'] >= 1

    def test_no_active_deliveries(self, partner_client, db):
        response = partner_client.get('/api/delivery/route-optimization/', RIDER_AT_STORE)
        assert response.data == {'route': [], 'total_distance': 0, 'estimated_time': 0, 'order_count': 0}


@pytest.mark.django_db
class TestEarnings:

    def test_delivered_orders_count_towards_earnings(self, partner_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        move_order(order, Status.DELIVERED)

        response = partner_client.get('/api/delivery/earnings/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_earnings'] == 20.0
        assert response.data['total_deliveries'] == 1
        assert response.data['average_earnings'] == 20.0
        assert list(response.data['earnings_by_day'].values()) == [20.0]

    def test_undelivered_orders_do_not_count(self, partner_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        move_order(order, Status.OUT_FOR_DELIVERY)
        response = partner_client.get('/api/delivery/earnings/')
        assert response.data['total_earnings'] == 0
        assert response.data['average_earnings'] == 0

    def test_explicit_window(self, partner_client, db):
        response = partner_client.get('/api/delivery/earnings/', {
            'start_date': '2024-01-01', 'end_date': '2024-01-31'
        })
        assert response.data['period'] == {'start_date': '2024-01-01', 'end_date': '2024-01-31'}

    def test_bad_date(self, partner_client, db):
        response = partner_client.get('/api/delivery/earnings/', {'start_date': 'yesterday', 'end_date': '2024-01-31'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'start_date' in response.data
