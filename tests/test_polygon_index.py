from app.services.polygon_index import LocationCache, PolygonIndex

from .conftest import INSIDE_D1, OUTSIDE_ALL, make_division


def test_resolves_point_inside_division(repos, polygon_index):
    repos.divisions.add(make_division())

    division = polygon_index.resolve(*INSIDE_D1)

    assert division is not None
    assert division.id == "D1"


def test_point_outside_every_division(repos, polygon_index):
    repos.divisions.add(make_division())

    assert polygon_index.resolve(*OUTSIDE_ALL) is None


def test_cache_hit_does_not_rescan(repos, polygon_index):
    repos.divisions.add(make_division())

    polygon_index.resolve(*INSIDE_D1)
    scans = repos.divisions.list_calls
    again = polygon_index.resolve(*INSIDE_D1)

    assert again.id == "D1"
    assert repos.divisions.list_calls == scans


def test_outside_result_is_cached(repos, polygon_index):
    repos.divisions.add(make_division())

    polygon_index.resolve(*OUTSIDE_ALL)
    scans = repos.divisions.list_calls
    assert polygon_index.resolve(*OUTSIDE_ALL) is None
    assert repos.divisions.list_calls == scans


def test_cache_key_rounds_to_six_decimals(repos, polygon_index):
    repos.divisions.add(make_division())

    polygon_index.resolve(18.6200001, 73.8000001)
    scans = repos.divisions.list_calls
    polygon_index.resolve(18.62000004, 73.80000004)

    assert repos.divisions.list_calls == scans


def test_cache_entries_expire(repos, polygon_index, clock):
    repos.divisions.add(make_division())

    polygon_index.resolve(*INSIDE_D1)
    scans = repos.divisions.list_calls
    clock.advance(hours=24, seconds=1)
    polygon_index.resolve(*INSIDE_D1)

    assert repos.divisions.list_calls == scans + 1


def test_string_coordinates_are_accepted(repos, polygon_index):
    repos.divisions.add(make_division())

    assert polygon_index.resolve("18.62", "73.80").id == "D1"


def test_non_numeric_coordinates_resolve_to_none(repos, polygon_index):
    repos.divisions.add(make_division())

    assert polygon_index.resolve("north", "73.80") is None
    assert repos.divisions.list_calls == 0


def test_division_without_boundary_is_skipped(repos, polygon_index):
    repos.divisions.add(make_division("BROKEN", ring=[[73.79, 18.61]]))
    repos.divisions.add(make_division("D1"))

    assert polygon_index.resolve(*INSIDE_D1).id == "D1"


def test_first_match_in_storage_order_wins(repos, polygon_index):
    repos.divisions.add(make_division("FIRST", name="First"))
    repos.divisions.add(make_division("SECOND", name="Second"))

    assert polygon_index.resolve(*INSIDE_D1).id == "FIRST"


def test_lookup_failure_is_treated_as_outside(clock):
    class BrokenDivisions:
        def list_all(self):
            raise RuntimeError("firestore unavailable")

        def get(self, division_id):
            return None

    index = PolygonIndex(divisions=BrokenDivisions(), clock=clock)

    assert index.resolve(*INSIDE_D1) is None


def test_location_cache_len_and_clear(clock):
    from datetime import timedelta

    cache = LocationCache(timedelta(hours=1), clock)
    cache.put(LocationCache.key(1.0, 2.0), None)
    assert len(cache) == 1
    assert cache.get("1.000000,2.000000").is_outside

    cache.clear()
    assert len(cache) == 0
