import math
from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime, date
from uuid import uuid4


def generate_id() -> str:
    return uuid4().hex


class Person(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    email: Optional[str] = None

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Person name must not be empty')
        return v.strip()

    @field_validator('email')
    @classmethod
    def blank_email_is_none(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()


class Category(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    icon: str = ""

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Category name must not be empty')
        return v.strip()


def default_categories() -> List[Category]:
    """Seed categories for a freshly created trip."""
    return [
        Category(name='Food', icon='🍽️'),
        Category(name='Transport', icon='🚗'),
        Category(name='Accommodation', icon='🏨'),
        Category(name='Entertainment', icon='🎉'),
        Category(name='Shopping', icon='🛍️'),
        Category(name='Other', icon='📦'),
    ]


class Expense(BaseModel):
    id: str = Field(default_factory=generate_id)
    description: str
    amount: float
    category_id: Optional[str] = None
    paid_by: Optional[str] = None
    date: date
    # May become empty when people are removed from the trip
    split_between: List[str] = Field(default_factory=list)

    @field_validator('description')
    @classmethod
    def description_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Expense description must not be empty')
        return v.strip()

    @field_validator('amount')
    @classmethod
    def amount_not_negative(cls, v):
        if not math.isfinite(v) or v < 0:
            raise ValueError('Amount must be a non-negative number')
        return v


class Trip(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    description: str = ""
    start_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.now)
    people: List[Person] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Trip name must not be empty')
        return v.strip()

    def people_index(self) -> Dict[str, str]:
        return {p.id: p.name for p in self.people}

    def find_person(self, person_id: str) -> Optional[Person]:
        return next((p for p in self.people if p.id == person_id), None)

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id),
                    None)

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def remove_person(self, person_id: str) -> bool:
        """Drop a person and every reference expenses hold to them.

        Expenses paid by the person become unassigned and the person leaves
        every split set, so balances never see a dangling id.
        """
        if self.find_person(person_id) is None:
            return False

        self.people = [p for p in self.people if p.id != person_id]
        for expense in self.expenses:
            if expense.paid_by == person_id:
                expense.paid_by = None
            expense.split_between = [
                pid for pid in expense.split_between if pid != person_id
            ]
        return True

    def remove_category(self, category_id: str) -> bool:
        if self.find_category(category_id) is None:
            return False

        self.categories = [c for c in self.categories if c.id != category_id]
        for expense in self.expenses:
            if expense.category_id == category_id:
                expense.category_id = None
        return True

    def remove_expense(self, expense_id: str) -> bool:
        if self.find_expense(expense_id) is None:
            return False

        self.expenses = [e for e in self.expenses if e.id != expense_id]
        return True


class Balance(BaseModel):
    person_id: str
    person_name: str
    balance: float
    status: str


class Transfer(BaseModel):
    from_person_id: str
    from_name: str
    to_person_id: str
    to_name: str
    amount: float


class CategoryTotal(BaseModel):
    name: str
    icon: str
    amount: float


class Summary(BaseModel):
    total_expenses: float
    expense_count: int
    people_count: int
    balances: List[Balance]
    settlements: List[Transfer]
    categories: List[CategoryTotal]
