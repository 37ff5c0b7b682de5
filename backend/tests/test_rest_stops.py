"""
Rest-stop planner tests.
"""

import pytest
from backend.app.services.rest_stops import REST_STOP_NOTE, build_rest_stop_plan, plan_rest_stops


@pytest.mark.parametrize("distance", [None, 0, -50, "abc", float("nan")])
def test_no_stops_without_a_positive_distance(distance):
    assert plan_rest_stops(distance) == []


def test_exact_interval_has_no_stop():
    # The stop at 400 km would coincide with arrival
    assert plan_rest_stops(400) == []


def test_just_over_interval_has_one_stop():
    stops = plan_rest_stops(401)
    assert [s["at_distance_km"] for s in stops] == [400]


def test_900_km_has_two_stops():
    stops = plan_rest_stops(900)

    assert [s["at_distance_km"] for s in stops] == [400, 800]
    assert [s["stop_number"] for s in stops] == [1, 2]
    assert all(s["notes"] == REST_STOP_NOTE for s in stops)


def test_custom_interval():
    stops = plan_rest_stops(1000, interval_km=250)
    assert [s["at_distance_km"] for s in stops] == [250, 500, 750]


def test_plan_document():
    plan = build_rest_stop_plan(900)

    assert plan["total_distance_km"] == 900
    assert plan["interval_km"] == 400
    assert len(plan["stops"]) == 2


def test_plan_document_for_unknown_distance():
    plan = build_rest_stop_plan(None)

    assert plan["total_distance_km"] is None
    assert plan["stops"] == []
