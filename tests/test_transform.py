from localrank.etl import transform


def test_to_place_record_reads_places_fields():
    result = {
        "place_id": "pid-1",
        "name": "Acme",
        "formatted_address": "Main St",
        "rating": 4.5,
        "user_ratings_total": 10,
        "geometry": {"location": {"lng": 10, "lat": 20}},
    }

    record = transform.to_place_record(result, index=0)

    assert record.result_id == "pid-1"
    assert record.external_ref == "pid-1"
    assert record.name == "Acme"
    assert record.address == "Main St"
    assert record.rating == 4.5
    assert record.review_count == 10
    assert (record.latitude, record.longitude) == (20.0, 10.0)


def test_to_place_record_degrades_missing_fields():
    record = transform.to_place_record({"vicinity": "Elm Rd", "rating": "n/a", "geometry": None}, index=3)

    assert record.result_id == "place_3"
    assert record.external_ref == ""
    assert record.name == transform.UNKNOWN_NAME
    assert record.address == "Elm Rd"
    assert record.rating is None
    assert record.review_count is None
    assert record.latitude is None


def test_to_resolved_location():
    result = {
        "formatted_address": "Austin, TX, USA",
        "place_id": "abc",
        "geometry": {"location": {"lat": 30.2672, "lng": -97.7431}},
    }

    location = transform.to_resolved_location(result, "google_geocoding")

    assert location.latitude == 30.2672
    assert location.source_strategy == "google_geocoding"
    assert location.formatted_address == "Austin, TX, USA"
    assert location.place_id == "abc"


def test_to_resolved_location_requires_valid_geometry():
    assert transform.to_resolved_location({"formatted_address": "x"}, "s") is None
    assert transform.to_resolved_location({"geometry": {"location": {"lat": 120, "lng": 0}}}, "s") is None


def test_safe_helpers():
    assert transform.safe_float("4.2") == 4.2
    assert transform.safe_float(True) is None
    assert transform.safe_int("1,234 reviews") == 1234
    assert transform.safe_int(None) is None
    assert transform.strip_or_none("  ") is None


def test_safe_int_parses_decimal_strings():
    assert transform.safe_int("4.5") == 4
    assert transform.safe_int("12.0") == 12
    assert transform.safe_int(" 37 ") == 37
    assert transform.safe_int(12.9) == 12
    assert transform.safe_int(float("nan")) is None
    assert transform.safe_int("no reviews") is None
