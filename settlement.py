import logging
from typing import Dict, List

from models import (Balance, CategoryTotal, Expense, Summary, Transfer,
                    Trip)

logger = logging.getLogger(__name__)

# Balances and remaining transfer amounts below one cent count as settled
EPSILON = 0.01


def calculate_summary(trip: Trip) -> Summary:
    people_index = trip.people_index()
    balance_map = compute_balances([p.id for p in trip.people],
                                   trip.expenses)
    settlements = compute_settlements(balance_map, people_index)

    balances = [
        Balance(person_id=person.id,
                person_name=person.name,
                balance=balance_map[person.id],
                status=balance_status(balance_map[person.id]))
        for person in trip.people
    ]

    return Summary(
        total_expenses=sum(e.amount for e in trip.expenses),
        expense_count=len(trip.expenses),
        people_count=len(trip.people),
        balances=balances,
        settlements=settlements,
        categories=category_breakdown(trip),
    )


def balance_status(balance: float) -> str:
    if balance > EPSILON:
        return "owed"
    if balance < -EPSILON:
        return "owes"
    return "settled"


def compute_balances(people: List[str],
                     expenses: List[Expense]) -> Dict[str, float]:
    """Net balance per person: positive is owed money, negative owes.

    Every person starts at zero. Each expense credits its payer with the
    full amount and debits every participant an equal share. Expenses
    without a payer or without participants are skipped. Ids missing from
    ``people`` are ignored.
    """
    balance_map: Dict[str, float] = {pid: 0.0 for pid in people}
    skipped = 0

    for expense in expenses:
        if expense.paid_by is None or not expense.split_between:
            skipped += 1
            continue

        share = expense.amount / len(expense.split_between)

        if expense.paid_by in balance_map:
            balance_map[expense.paid_by] += expense.amount

        for person_id in expense.split_between:
            if person_id in balance_map:
                balance_map[person_id] -= share

    if skipped:
        logger.debug("Skipped %d expenses without payer or participants",
                     skipped)

    return balance_map


def compute_settlements(balances: Dict[str, float],
                        people_index: Dict[str, str]) -> List[Transfer]:
    """Greedy largest-debtor/largest-creditor matching.

    Not guaranteed to use the fewest transfers, but deterministic: equal
    magnitudes keep their input order. Transfers between people missing
    from ``people_index`` are not emitted, though the amounts still count
    as matched.
    """
    debtors = [[pid, -balance] for pid, balance in balances.items()
               if balance < -EPSILON]
    creditors = [[pid, balance] for pid, balance in balances.items()
                 if balance > EPSILON]

    debtors.sort(key=lambda x: x[1], reverse=True)
    creditors.sort(key=lambda x: x[1], reverse=True)

    transfers = []

    i, j = 0, 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(debtor[1], creditor[1])

        debtor_id, creditor_id = debtor[0], creditor[0]
        if debtor_id in people_index and creditor_id in people_index:
            transfers.append(Transfer(
                from_person_id=debtor_id,
                from_name=people_index[debtor_id],
                to_person_id=creditor_id,
                to_name=people_index[creditor_id],
                amount=amount
            ))

        debtor[1] -= amount
        creditor[1] -= amount

        if debtor[1] < EPSILON:
            i += 1
        if creditor[1] < EPSILON:
            j += 1

    logger.debug("Matched %d debtors against %d creditors in %d transfers",
                 len(debtors), len(creditors), len(transfers))

    return transfers


def category_breakdown(trip: Trip) -> List[CategoryTotal]:
    totals: Dict[str, CategoryTotal] = {}

    for expense in trip.expenses:
        category = (trip.find_category(expense.category_id)
                    if expense.category_id else None)
        name = category.name if category else "Uncategorized"
        icon = category.icon if category else ""

        if name not in totals:
            totals[name] = CategoryTotal(name=name, icon=icon, amount=0.0)
        totals[name].amount += expense.amount

    return list(totals.values())
