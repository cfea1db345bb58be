"""
Great-circle distances and a greedy delivery route builder.
"""
import math
from dataclasses import dataclass, field
from typing import Optional

EARTH_RADIUS_KM = 6371.0088


def haversine_km(origin, destination):
    """Great-circle distance in kilometres between two {lat, lng} mappings."""
    lat1, lng1 = math.radians(float(origin['lat'])), math.radians(float(origin['lng']))
    lat2, lng2 = math.radians(float(destination['lat'])), math.radians(float(destination['lng']))

    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def has_coordinates(value):
    return (
        isinstance(value, dict)
        and value.get('lat') is not None
        and value.get('lng') is not None
    )


@dataclass
class RoutePoint:
    kind: str
    coordinates: dict
    name: str = ''
    order_id: Optional[int] = None
    order_number: Optional[str] = None
    details: dict = field(default_factory=dict)

    def as_dict(self):
        return {
            'type': self.kind,
            'coordinates': self.coordinates,
            'name': self.name,
            'order_id': self.order_id,
            'order_number': self.order_number,
            **self.details,
        }


def nearest_neighbor_route(start, points):
    """
    Greedy walk from ``start``: repeatedly visit the closest unvisited point.

    Returns ``start`` followed by every point in ``points`` exactly once.
    No pickup-before-delivery ordering is enforced.
    """
    route = [start]
    remaining = list(points)
    while remaining:
        tail = route[-1].coordinates
        nearest = min(remaining, key=lambda point: haversine_km(tail, point.coordinates))
        remaining.remove(nearest)
        route.append(nearest)
    return route


def route_length_km(route):
    return sum(
        haversine_km(a.coordinates, b.coordinates)
        for a, b in zip(route, route[1:])
    )


def estimated_minutes(distance_km, speed_kmh):
    return math.ceil(distance_km / speed_kmh * 60)
