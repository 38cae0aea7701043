from leadform.results.view import DEFAULT_LOCATIONS, build_result_view, parse_int_safe, pick_locations


def test_full_payload():
    view = build_result_view({
        "first": "Ana", "cameraCount": 3, "nvrChannel": "4",
        "cameraRecommendedLocations": ["Front door", " Garage ", "Front door"],
    })
    assert view.first_name == "Ana"
    assert view.camera_count == 3
    assert view.nvr_channel == 4
    assert view.locations == ["Front door", "Garage"]


def test_first_name_fallbacks():
    assert build_result_view({"firstname": "Bo"}).first_name == "Bo"
    assert build_result_view({"to_name": "Cy Young"}).first_name == "Cy"
    assert build_result_view({}).first_name == "there"


def test_parse_int_safe():
    assert parse_int_safe("8 channels") == 8
    assert parse_int_safe(" -2") == -2
    assert parse_int_safe("n/a") is None
    assert parse_int_safe(None) is None


def test_locations_from_delimited_string():
    assert pick_locations({"camera_locations": "Porch; Yard\nPorch"}, None) == ["Porch", "Yard"]


def test_default_locations_by_count():
    assert pick_locations({}, None) == DEFAULT_LOCATIONS[:4]
    assert pick_locations({}, 1) == DEFAULT_LOCATIONS[:2]
    assert pick_locations({}, 12) == DEFAULT_LOCATIONS


def test_empty_payload_view():
    view = build_result_view({})
    assert view.camera_count is None
    assert view.nvr_channel is None
    assert len(view.locations) == 4
