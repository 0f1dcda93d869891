import pytest

from settlement import (EPSILON, balance_status, calculate_summary,
                        compute_balances, compute_settlements)
from tests.conftest import make_expense

PEOPLE = {"a": "Asha", "b": "Bilal", "c": "Chen", "d": "Dev"}


def apply_transfers(balances, transfers):
    after = dict(balances)
    for t in transfers:
        after[t.from_person_id] += t.amount
        after[t.to_person_id] -= t.amount
    return after


def test_no_expenses_gives_zero_balances_and_no_transfers():
    balances = compute_balances(["a", "b"], [])

    assert balances == {"a": 0, "b": 0}
    assert compute_settlements(balances, PEOPLE) == []


def test_single_payer_equal_split():
    expense = make_expense(90, "a", ["a", "b", "c"])

    balances = compute_balances(["a", "b", "c"], [expense])

    assert balances["a"] == pytest.approx(60)
    assert balances["b"] == pytest.approx(-30)
    assert balances["c"] == pytest.approx(-30)

    transfers = compute_settlements(balances, PEOPLE)
    pairs = sorted((t.from_person_id, t.to_person_id) for t in transfers)
    assert pairs == [("b", "a"), ("c", "a")]
    assert all(t.amount == pytest.approx(30) for t in transfers)
    assert transfers[0].from_name == "Bilal"
    assert transfers[0].to_name == "Asha"


def test_payer_outside_split_is_credited_full_amount():
    balances = compute_balances(["a", "b", "c"],
                                [make_expense(40, "a", ["b", "c"])])

    assert balances == {"a": 40, "b": -20, "c": -20}


def test_balances_sum_to_zero():
    expenses = [
        make_expense(100, "a", ["a", "b", "c"]),
        make_expense(45.5, "b", ["a", "c"]),
        make_expense(12.99, "c", ["a", "b", "c", "d"]),
        make_expense(7, "d", ["d"]),
    ]

    balances = compute_balances(["a", "b", "c", "d"], expenses)

    assert abs(sum(balances.values())) < EPSILON


def test_malformed_expenses_are_skipped():
    expenses = [
        make_expense(50, None, ["a", "b"]),
        make_expense(50, "a", []),
    ]

    balances = compute_balances(["a", "b"], expenses)

    assert balances == {"a": 0, "b": 0}


def test_unknown_ids_do_not_create_entries():
    expenses = [
        make_expense(30, "ghost", ["a", "b", "ghost"]),
        make_expense(20, "a", ["a", "gone"]),
    ]

    balances = compute_balances(["a", "b"], expenses)

    assert set(balances) == {"a", "b"}
    assert balances["a"] == pytest.approx(-10 + 20 - 10)
    assert balances["b"] == pytest.approx(-10)


def test_settled_balances_produce_no_transfers():
    balances = {"a": 0.004, "b": -0.009, "c": 0.005}

    assert compute_settlements(balances, PEOPLE) == []


def test_multiple_debtors_and_creditors():
    balances = {"a": 50.0, "b": 30.0, "c": -40.0, "d": -40.0}

    transfers = compute_settlements(balances, PEOPLE)

    assert [(t.from_person_id, t.to_person_id, t.amount)
            for t in transfers] == [
        ("c", "a", 40.0),
        ("d", "a", 10.0),
        ("d", "b", 30.0),
    ]
    assert all(t.amount > 0 for t in transfers)
    after = apply_transfers(balances, transfers)
    assert all(abs(v) < EPSILON for v in after.values())


def test_equal_magnitudes_keep_input_order():
    balances = {"b": -10.0, "a": -10.0, "c": 20.0}

    transfers = compute_settlements(balances, PEOPLE)

    assert [t.from_person_id for t in transfers] == ["b", "a"]


def test_transfers_settle_uneven_three_way_split():
    expenses = [
        make_expense(100, "a", ["a", "b", "c"]),
        make_expense(10, "b", ["a", "b", "c"]),
    ]
    balances = compute_balances(["a", "b", "c"], expenses)

    transfers = compute_settlements(balances, PEOPLE)

    after = apply_transfers(balances, transfers)
    assert all(abs(v) < EPSILON for v in after.values())
    assert all(t.amount >= EPSILON for t in transfers)


def test_transfers_skip_people_missing_from_index():
    balances = {"a": 20.0, "x": -10.0, "b": -10.0}

    transfers = compute_settlements(balances, PEOPLE)

    assert len(transfers) == 1
    assert transfers[0].from_person_id == "b"
    assert transfers[0].amount == pytest.approx(10)


def test_balance_status():
    assert balance_status(5) == "owed"
    assert balance_status(-5) == "owes"
    assert balance_status(0.009) == "settled"
    assert balance_status(-0.01) == "settled"


def test_calculate_summary(trip):
    food = trip.categories[0]
    trip.expenses = [
        make_expense(90, "a", ["a", "b", "c"], category_id=food.id),
        make_expense(30, "b", ["b", "c"], category_id=food.id),
        make_expense(12, "c", ["c"]),
    ]

    summary = calculate_summary(trip)

    assert summary.total_expenses == pytest.approx(132)
    assert summary.expense_count == 3
    assert summary.people_count == 3
    assert [b.person_id for b in summary.balances] == ["a", "b", "c"]
    assert [b.status for b in summary.balances] == ["owed", "owes", "owes"]
    assert [(c.name, c.amount) for c in summary.categories] == [
        ("Food", 120), ("Uncategorized", 12)
    ]
    assert [(t.from_name, t.to_name, t.amount)
            for t in summary.settlements] == [
        ("Chen", "Asha", 45), ("Bilal", "Asha", 15)
    ]


def test_calculate_summary_after_person_removed(trip):
    trip.expenses = [make_expense(60, "b", ["a", "b", "c"])]

    trip.remove_person("b")
    summary = calculate_summary(trip)

    assert [b.balance for b in summary.balances] == [0, 0]
    assert summary.settlements == []
