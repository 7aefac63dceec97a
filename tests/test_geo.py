from triptailor.schemas import Coordinates
from triptailor.tools.geo import haversine_meters, is_valid_coordinate, parse_wkt_point


def test_haversine_warsaw_to_krakow():
    distance = haversine_meters(52.2297, 21.0122, 50.0647, 19.9450)
    assert 250_000 < distance < 255_000


def test_haversine_same_point_is_zero():
    assert haversine_meters(50.0614, 19.9366, 50.0614, 19.9366) == 0


def test_haversine_returns_whole_meters():
    assert isinstance(haversine_meters(50.0614, 19.9366, 50.0617, 19.9373), int)


def test_parse_wkt_point_reads_longitude_first():
    coords = parse_wkt_point("POINT(19.9366 50.0614)")
    assert coords == Coordinates(lat=50.0614, lon=19.9366)


def test_parse_wkt_point_accepts_comma_and_case():
    coords = parse_wkt_point("point ( -3.7 , 40.4 )")
    assert coords.lat == 40.4
    assert coords.lon == -3.7


def test_parse_wkt_point_rejects_non_points():
    assert parse_wkt_point(None) is None
    assert parse_wkt_point("") is None
    assert parse_wkt_point("LINESTRING(0 0, 1 1)") is None


def test_is_valid_coordinate():
    assert is_valid_coordinate(Coordinates(lat=50.06, lon=19.93))
    # One non-zero axis is enough
    assert is_valid_coordinate(Coordinates(lat=0.0, lon=19.93))
    assert not is_valid_coordinate(Coordinates(lat=0.0, lon=0.00001))
    assert not is_valid_coordinate(None)
