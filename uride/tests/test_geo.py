"""
Great-circle distance tests.
"""

import itertools

import pytest

from uride.app.domain.geo import Coordinate, haversine_distance

DELHI = Coordinate(28.6139, 77.2090)
INDIA_GATE = Coordinate(28.6129, 77.2295)
IGI_AIRPORT = Coordinate(28.5562, 77.1000)
MUMBAI = Coordinate(19.0760, 72.8777)

# Poles, both sides of the antimeridian, all four hemispheres and a
# near-antipodal pair
POINTS = [
    DELHI,
    MUMBAI,
    Coordinate(90, 0),
    Coordinate(-90, 0),
    Coordinate(89.9, 45),
    Coordinate(0, 179.9),
    Coordinate(0, -179.9),
    Coordinate(-33.8688, 151.2093),
    Coordinate(40.7128, -74.0060),
    Coordinate(-34.6037, -58.3816),
    Coordinate(10, 20),
    Coordinate(-10, -159.9999),
]


@pytest.mark.parametrize("point", POINTS)
def test_distance_to_self_is_zero(point):
    assert haversine_distance(point, point) == 0


@pytest.mark.parametrize("a,b", list(itertools.combinations(POINTS, 2)))
def test_distance_is_symmetric(a, b):
    assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a), rel=1e-12)


@pytest.mark.parametrize("a,b,c", list(itertools.combinations(POINTS, 3)))
def test_triangle_inequality(a, b, c):
    direct = haversine_distance(a, c)
    via = haversine_distance(a, b) + haversine_distance(b, c)
    assert direct <= via + 1e-6


def test_known_city_distances():
    assert haversine_distance(DELHI, INDIA_GATE) == pytest.approx(2.0, abs=0.1)
    assert haversine_distance(DELHI, IGI_AIRPORT) == pytest.approx(12.4, abs=0.3)
    assert haversine_distance(DELHI, MUMBAI) == pytest.approx(1148, abs=5)


def test_distance_across_the_antimeridian():
    # 0.2 degrees of equator, not 359.8
    assert haversine_distance(Coordinate(0, 179.9), Coordinate(0, -179.9)) == pytest.approx(22.24, abs=0.01)


def test_pole_longitude_does_not_matter():
    assert haversine_distance(Coordinate(90, 0), Coordinate(90, 120)) == pytest.approx(0, abs=1e-6)
    assert haversine_distance(Coordinate(90, 0), Coordinate(-90, 0)) == pytest.approx(20015.1, abs=0.5)


def test_antipodal_points_do_not_raise():
    distance = haversine_distance(Coordinate(0, 0), Coordinate(0, 180))
    assert distance == pytest.approx(20015.1, abs=0.5)
