from deeproots.catalog import FleetRecord
from deeproots.matcher import (
    best_match,
    fleet_searchable_text,
    rank_matches,
    score_fleet_record,
    score_item_name,
    score_question,
)

TRUCK = FleetRecord(
    name="Truck 1",
    model="Ford F-150",
    year="2019",
    plate="ABC-123",
    status="Active",
    last_maintenance="01/15/2026",
    next_maintenance="02/01/2026",
    notes="New tires",
)


def test_exact_name_scores_100():
    assert score_item_name("Red Mulch", "Red Mulch") == 100
    assert score_item_name("red mulch", "Red Mulch") == 100


def test_item_score_ladder():
    assert score_item_name("mulch", "Mulch - Red") == 80
    assert score_item_name("mulch bags", "Mulch Bag") == 95
    assert score_item_name("red bags", "Red Bag Mulch") == 75
    assert score_item_name("mulch bags", "Bag - Mulch") == 60
    assert score_item_name("red cedar", "Mulch - Red") == 25
    assert score_item_name("", "Mulch - Red") == 0


def test_exact_match_ranks_first():
    names = ["Red Mulch Premium", "Red Mulch"]
    ranked = rank_matches(names, lambda name: score_item_name("Red Mulch", name), 30)
    assert [match.record for match in ranked] == ["Red Mulch", "Red Mulch Premium"]


def test_ties_keep_input_order_and_threshold_is_exclusive():
    names = ["Mulch - Red", "Mulch - Black", "Topsoil"]
    ranked = rank_matches(names, lambda name: score_item_name("mulch", name), 30)
    assert [match.record for match in ranked] == ["Mulch - Red", "Mulch - Black"]
    assert rank_matches(names, lambda name: score_item_name("mulch", name), 80) == []


def test_best_match_picks_first_highest_and_never_zero():
    questions = ["when to prune boxwood", "prune boxwood in winter", "unrelated"]
    best = best_match(questions, lambda text: score_question("prune boxwood", text), 40)
    assert best is not None
    assert best.record == "when to prune boxwood"
    assert best_match(["unrelated"], lambda text: score_question("boxwood", text), -1) is None


def test_knowledge_threshold():
    assert score_question("mulch depth guide", "how deep should mulch be applied") < 40
    assert best_match(
        ["how deep should mulch be applied"],
        lambda text: score_question("mulch depth guide", text),
        40,
    ) is None


def test_fleet_scoring():
    assert score_fleet_record("abc-123", TRUCK) == 100
    assert score_fleet_record("truck 1", TRUCK) == 100
    assert score_fleet_record("ford", TRUCK) == 80
    assert score_fleet_record("ford tires", TRUCK) == 60


def test_maintenance_dates_are_not_searchable():
    assert "02/01/2026" not in fleet_searchable_text(TRUCK)
    assert score_fleet_record("02/01/2026", TRUCK) == 0
