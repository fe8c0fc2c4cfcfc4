from app.utils.geometry import is_valid_ring, point_in_polygon, to_float

SQUARE = [[73.79, 18.61], [73.81, 18.61], [73.81, 18.63], [73.79, 18.63]]


def test_point_inside_square():
    assert point_in_polygon(73.80, 18.62, SQUARE) is True


def test_point_outside_square():
    assert point_in_polygon(73.85, 18.62, SQUARE) is False
    assert point_in_polygon(73.80, 18.70, SQUARE) is False


def test_closed_ring_gives_same_answer():
    closed = SQUARE + [SQUARE[0]]
    assert point_in_polygon(73.80, 18.62, closed) is True
    assert point_in_polygon(73.85, 18.62, closed) is False


def test_result_does_not_depend_on_ring_rotation():
    for shift in range(len(SQUARE)):
        rotated = SQUARE[shift:] + SQUARE[:shift]
        assert point_in_polygon(73.80, 18.62, rotated) is True
        assert point_in_polygon(73.70, 18.62, rotated) is False


def test_concave_polygon_notch_is_outside():
    # U shape opening to the north
    ring = [[0, 0], [3, 0], [3, 3], [2, 3], [2, 1], [1, 1], [1, 3], [0, 3]]
    assert point_in_polygon(0.5, 2, ring) is True
    assert point_in_polygon(1.5, 2, ring) is False
    assert point_in_polygon(1.5, 0.5, ring) is True


def test_string_vertices_are_coerced():
    ring = [[str(lng), str(lat)] for lng, lat in SQUARE]
    assert point_in_polygon("73.80", "18.62", ring) is True


def test_invalid_vertex_is_skipped_not_fatal():
    ring = [[73.79, 18.61], [73.81, 18.61], ["bad", None], [73.81, 18.63], [73.79, 18.63]]
    # The two edges touching the bad vertex are dropped; the call must not raise
    assert point_in_polygon(73.80, 18.62, ring) in (True, False)


def test_short_or_missing_ring_never_matches():
    assert point_in_polygon(73.80, 18.62, None) is False
    assert point_in_polygon(73.80, 18.62, [[73.79, 18.61], [73.81, 18.61]]) is False
    assert is_valid_ring([]) is False
    assert is_valid_ring(SQUARE) is True


def test_non_numeric_point_never_matches():
    assert point_in_polygon("abc", 18.62, SQUARE) is False
    assert point_in_polygon(73.80, None, SQUARE) is False


def test_to_float():
    assert to_float("18.62") == 18.62
    assert to_float(5) == 5.0
    assert to_float("") is None
    assert to_float("north") is None
    assert to_float(True) is None
    assert to_float(float("nan")) is None
