from datetime import date

import pytest

from models import Expense, Person, Trip, default_categories
from storage import InMemoryStorage


def make_expense(amount, paid_by, split_between, **kwargs):
    kwargs.setdefault("description", "Expense")
    kwargs.setdefault("date", date(2024, 5, 1))
    return Expense(amount=amount,
                   paid_by=paid_by,
                   split_between=split_between,
                   **kwargs)


@pytest.fixture
def trip():
    trip = Trip(name="Goa", categories=default_categories())
    trip.people = [
        Person(id="a", name="Asha"),
        Person(id="b", name="Bilal"),
        Person(id="c", name="Chen"),
    ]
    return trip


@pytest.fixture
def storage():
    return InMemoryStorage()
