"""Grid geometry: sample coordinates around a center point.

Points are laid out north-up in row-major order. The grid's longer side spans
``span_km`` kilometres and both axes use the same physical step, so a
non-square grid keeps square cells. Degree conversion uses a local flat-earth
approximation, which is accurate at the few-kilometre scale of a local search
grid.
"""

import math

from Grid_Rank.models.business import Coordinate
from Grid_Rank.models.grid import GridPoint, GridSpec

KM_PER_DEGREE_LATITUDE: float = 111.132
KM_PER_DEGREE_LONGITUDE_AT_EQUATOR: float = 111.320
EARTH_RADIUS_KM: float = 6371.0


def grid_step_km(spec: GridSpec) -> float:
    """Physical distance between adjacent points, in kilometres."""
    max_dim = max(spec.columns, spec.rows)
    if max_dim <= 1:
        return 0.0
    return spec.span_km / (max_dim - 1)


def generate_points(center: Coordinate, spec: GridSpec) -> list[GridPoint]:
    """Generate ``columns * rows`` sample points centered on *center*.

    Latitude decreases down the rows and longitude increases across the
    columns. The centroid of the returned coordinates equals *center*.

    Args:
        center: Grid center, normally the target business location.
        spec: Grid shape and span.

    Returns:
        Points in row-major order, ``index = row * columns + column``.
    """
    step_km = grid_step_km(spec)
    km_per_deg_lng = KM_PER_DEGREE_LONGITUDE_AT_EQUATOR * math.cos(math.radians(center.latitude))
    step_lat = step_km / KM_PER_DEGREE_LATITUDE
    # Longitude degrees collapse at the poles; keep the step finite there.
    step_lng = step_km / km_per_deg_lng if km_per_deg_lng > 1e-9 else 0.0

    start_lat = center.latitude + (spec.rows - 1) / 2 * step_lat
    start_lng = center.longitude - (spec.columns - 1) / 2 * step_lng

    points: list[GridPoint] = []
    for row in range(spec.rows):
        for column in range(spec.columns):
            latitude = start_lat - row * step_lat
            longitude = start_lng + column * step_lng
            points.append(
                GridPoint(
                    index=row * spec.columns + column,
                    row=row,
                    column=column,
                    coordinate=Coordinate(
                        latitude=max(-90.0, min(90.0, latitude)),
                        longitude=_wrap_longitude(longitude),
                    ),
                )
            )
    return points


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _wrap_longitude(longitude: float) -> float:
    if -180.0 <= longitude <= 180.0:
        return longitude
    return (longitude + 180.0) % 360.0 - 180.0
