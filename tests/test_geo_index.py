import pytest

from drivers.geo_index import GeoIndex, haversine_km, within_radius
from drivers.models import DriverAvailability


def test_haversine_one_degree_of_longitude_on_the_equator():
    # 2 * pi * 6371 / 360
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.195, abs=0.001)


def test_haversine_is_zero_for_the_same_point_and_symmetric(city_centre):
    lat, lon = city_centre
    assert haversine_km(lat, lon, lat, lon) == 0.0
    assert haversine_km(lat, lon, 40.7580, -73.9855) == pytest.approx(haversine_km(40.7580, -73.9855, lat, lon))


def test_within_radius_boundary(city_centre):
    lat, lon = city_centre
    distance = haversine_km(lat, lon, lat + 0.05, lon)
    assert within_radius(lat, lon, lat + 0.05, lon, distance)
    assert not within_radius(lat, lon, lat + 0.05, lon, distance - 0.01)


def test_find_candidates_orders_by_quality_then_distance(geo_index, add_driver, city_centre):
    add_driver("close_low", d_lat=0.001)
    add_driver("far_high", d_lat=0.03)
    add_driver("close_high", d_lat=0.002)
    geo_index.record_rating("far_high", 5)
    geo_index.record_rating("close_high", 5)
    geo_index.record_rating("close_low", 3)

    ranked = geo_index.find_candidates(*city_centre, radius_km=10)

    assert ranked == ["close_high", "far_high", "close_low"]


def test_find_candidates_breaks_full_ties_by_driver_id(city_centre):
    lat, lon = city_centre
    index = GeoIndex([
        DriverAvailability.new("driver_b", lat + 0.01, lon),
        DriverAvailability.new("driver_a", lat + 0.01, lon),
    ])

    assert index.find_candidates(lat, lon, radius_km=5) == ["driver_a", "driver_b"]


def test_find_candidates_skips_offline_excluded_and_out_of_range(geo_index, add_driver, city_centre):
    add_driver("online", d_lat=0.01)
    add_driver("offline", d_lat=0.01)
    add_driver("excluded", d_lat=0.01)
    add_driver("too_far", d_lat=0.2)  # ~22 km
    geo_index.set_availability("offline", False)

    ranked = geo_index.find_candidates(*city_centre, radius_km=10, exclude={"excluded"})

    assert ranked == ["online"]


def test_find_candidates_empty_when_nobody_qualifies(geo_index, city_centre):
    assert geo_index.find_candidates(*city_centre, radius_km=10) == []


def test_rank_candidates_reports_distances(geo_index, add_driver, city_centre):
    add_driver("driver_1", d_lat=0.01)

    (candidate,) = geo_index.rank_candidates(*city_centre, radius_km=10)

    assert candidate.driver_id == "driver_1"
    assert candidate.distance_km == pytest.approx(1.112, abs=0.01)


def test_location_ping_registers_unknown_driver_as_available(geo_index):
    driver = geo_index.update_location("new_driver", 40.0, -74.0)

    assert driver.is_available
    assert driver.location == (40.0, -74.0)
    assert geo_index.is_available("new_driver")
    assert len(geo_index) == 1


def test_location_ping_keeps_availability_and_rating(geo_index, add_driver):
    add_driver("driver_1")
    geo_index.set_availability("driver_1", False)
    geo_index.record_rating("driver_1", 4)

    moved = geo_index.update_location("driver_1", 40.8, -73.9)

    assert moved.location == (40.8, -73.9)
    assert moved.is_available is False
    assert moved.quality_score == 4


def test_location_ping_rejects_invalid_coordinates(geo_index):
    with pytest.raises(ValueError):
        geo_index.update_location("driver_1", 91.0, 0.0)
    with pytest.raises(ValueError):
        geo_index.update_location("driver_1", 0.0, -181.0)


def test_set_availability_for_unknown_driver_raises(geo_index):
    with pytest.raises(KeyError):
        geo_index.set_availability("ghost", True)


def test_record_rating_keeps_a_running_average(geo_index, add_driver):
    add_driver("driver_1")

    geo_index.record_rating("driver_1", 5)
    geo_index.record_rating("driver_1", 3)
    driver = geo_index.record_rating("driver_1", 4)

    assert driver.rating_count == 3
    assert driver.quality_score == pytest.approx(4.0)


def test_negative_radius_is_rejected(geo_index, city_centre):
    with pytest.raises(ValueError):
        geo_index.find_candidates(*city_centre, radius_km=-1)


def test_radius_cuts_then_quality_ranks(geo_index, add_driver, city_centre):
    km = 1 / 111.19492664  # degrees of latitude per km
    add_driver("at_2km", d_lat=2 * km)
    add_driver("at_4km", d_lat=4 * km)
    add_driver("at_9km", d_lat=9 * km)
    geo_index.record_rating("at_4km", 5)
    geo_index.record_rating("at_2km", 4)
    geo_index.record_rating("at_9km", 5)

    assert geo_index.find_candidates(*city_centre, radius_km=5) == ["at_4km", "at_2km"]
