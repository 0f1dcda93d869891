import logging
from datetime import date
from typing import List, Optional

from fastapi import FastAPI, Request, Form, HTTPException, Depends
from fastapi.responses import HTMLResponse, Response, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from config import config
from models import Trip, Person, Category, Expense, Summary, default_categories
from storage import InMemoryStorage, create_storage
from settlement import calculate_summary
from exports import export_csv, export_pdf, export_filename
from utils import format_currency, parse_currency

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Trip Expense Ledger")
templates = Jinja2Templates(directory=config.TEMPLATES_DIR)

templates.env.filters['format_currency'] = format_currency

_storage = None


def get_storage() -> InMemoryStorage:
    global _storage
    if _storage is None:
        _storage = create_storage(config.STORAGE_PATH)
    return _storage


def load_trip(trip_id: str, storage: InMemoryStorage) -> Trip:
    trip = storage.get_trip(trip_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


def redirect_to_trip(trip: Trip) -> RedirectResponse:
    return RedirectResponse(url=f"/trip/{trip.id}", status_code=303)


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date")


def build_expense(trip: Trip, expense_id: Optional[str], description: str,
                  amount: str, expense_date: str, paid_by: str,
                  category_id: str, split_between: List[str]) -> Expense:
    """Validate expense form fields against the trip's people and categories."""
    try:
        amount_value = parse_currency(amount)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if amount_value < 0:
        raise HTTPException(status_code=400,
                            detail="Amount must not be negative")

    people = trip.people_index()
    if paid_by not in people:
        raise HTTPException(status_code=400,
                            detail="Payer must be a member of the trip")

    if not split_between:
        raise HTTPException(
            status_code=400,
            detail="Select at least one person to split the expense with")

    for pid in split_between:
        if pid not in people:
            raise HTTPException(
                status_code=400,
                detail="Everyone in the split must be a member of the trip")

    if category_id and trip.find_category(category_id) is None:
        raise HTTPException(status_code=400, detail="Unknown category")

    fields = dict(description=description,
                  amount=amount_value,
                  category_id=category_id or None,
                  paid_by=paid_by,
                  date=parse_date(expense_date),
                  split_between=list(dict.fromkeys(split_between)))
    if expense_id:
        fields["id"] = expense_id

    try:
        return Expense(**fields)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


# Routes that save the store are sync and run in the threadpool

@app.get("/", response_class=HTMLResponse)
def home(request: Request,
         storage: InMemoryStorage = Depends(get_storage)):
    current = storage.get_current_trip()
    if current:
        return redirect_to_trip(current)
    return templates.TemplateResponse(request, "home.html", {})


@app.post("/trip/create")
def create_trip(name: str = Form(...),
                description: str = Form(""),
                start_date: str = Form(""),
                storage: InMemoryStorage = Depends(get_storage)):
    try:
        trip = Trip(name=name,
                    description=description.strip(),
                    start_date=parse_date(start_date) if start_date else None,
                    categories=default_categories())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.create_trip(trip)
    logger.info("Created trip %s (%s)", trip.id, trip.name)
    return redirect_to_trip(trip)


@app.get("/trip/{trip_id}", response_class=HTMLResponse)
def view_trip(request: Request,
              trip_id: str,
              storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)
    storage.set_current_trip(trip.id)

    summary = calculate_summary(trip)
    expenses = sorted(trip.expenses, key=lambda e: e.date, reverse=True)

    return templates.TemplateResponse(request, "trip.html", {
        "trip": trip,
        "trips": storage.list_trips(),
        "people": trip.people_index(),
        "expenses": expenses,
        "summary": summary,
        "today": date.today().isoformat(),
    })


@app.post("/trip/{trip_id}/edit")
def edit_trip(trip_id: str,
              name: str = Form(...),
              description: str = Form(""),
              start_date: str = Form(""),
              storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    try:
        edited = Trip(id=trip.id,
                      name=name,
                      description=description.strip(),
                      start_date=parse_date(start_date) if start_date else None,
                      created_at=trip.created_at,
                      people=trip.people,
                      categories=trip.categories,
                      expenses=trip.expenses)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.update_trip(edited)
    logger.info("Edited trip %s", trip.id)
    return redirect_to_trip(edited)


@app.get("/trip/{trip_id}/summary", response_model=Summary)
async def trip_summary(trip_id: str,
                       storage: InMemoryStorage = Depends(get_storage)):
    return calculate_summary(load_trip(trip_id, storage))


@app.post("/trip/{trip_id}/person/add")
def add_person(trip_id: str,
               name: str = Form(...),
               email: str = Form(""),
               storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    try:
        person = Person(name=name, email=email)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    trip.people.append(person)
    storage.update_trip(trip)
    logger.info("Added person %s to trip %s", person.id, trip.id)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/person/{person_id}/edit")
def edit_person(trip_id: str,
                person_id: str,
                name: str = Form(...),
                email: str = Form(""),
                storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    if trip.find_person(person_id) is None:
        raise HTTPException(status_code=404, detail="Person not found")

    try:
        person = Person(id=person_id, name=name, email=email)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    trip.people = [person if p.id == person_id else p for p in trip.people]
    storage.update_trip(trip)
    logger.info("Edited person %s in trip %s", person_id, trip.id)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/person/{person_id}/delete")
def delete_person(trip_id: str,
                  person_id: str,
                  storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    if not trip.remove_person(person_id):
        raise HTTPException(status_code=404, detail="Person not found")

    storage.update_trip(trip)
    logger.info("Removed person %s from trip %s", person_id, trip.id)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/category/add")
def add_category(trip_id: str,
                 name: str = Form(...),
                 icon: str = Form(""),
                 storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    try:
        category = Category(name=name, icon=icon.strip())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    trip.categories.append(category)
    storage.update_trip(trip)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/category/{category_id}/edit")
def edit_category(trip_id: str,
                  category_id: str,
                  name: str = Form(...),
                  icon: str = Form(""),
                  storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    if trip.find_category(category_id) is None:
        raise HTTPException(status_code=404, detail="Category not found")

    try:
        category = Category(id=category_id, name=name, icon=icon.strip())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    trip.categories = [category if c.id == category_id else c
                       for c in trip.categories]
    storage.update_trip(trip)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/category/{category_id}/delete")
def delete_category(trip_id: str,
                    category_id: str,
                    storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    if not trip.remove_category(category_id):
        raise HTTPException(status_code=404, detail="Category not found")

    storage.update_trip(trip)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/expense/add")
def add_expense(trip_id: str,
                description: str = Form(...),
                amount: str = Form(...),
                expense_date: str = Form(...),
                paid_by: str = Form(...),
                category_id: str = Form(""),
                split_between: List[str] = Form([]),
                storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    expense = build_expense(trip, None, description, amount, expense_date,
                            paid_by, category_id, split_between)

    trip.expenses.append(expense)
    storage.update_trip(trip)
    logger.info("Added expense %s (%.2f) to trip %s", expense.id,
                expense.amount, trip.id)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/expense/{expense_id}/edit")
def edit_expense(trip_id: str,
                 expense_id: str,
                 description: str = Form(...),
                 amount: str = Form(...),
                 expense_date: str = Form(...),
                 paid_by: str = Form(...),
                 category_id: str = Form(""),
                 split_between: List[str] = Form([]),
                 storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    if trip.find_expense(expense_id) is None:
        raise HTTPException(status_code=404, detail="Expense not found")

    expense = build_expense(trip, expense_id, description, amount,
                            expense_date, paid_by, category_id,
                            split_between)

    trip.expenses = [expense if e.id == expense_id else e
                     for e in trip.expenses]
    storage.update_trip(trip)
    logger.info("Edited expense %s (%.2f) in trip %s", expense_id,
                expense.amount, trip.id)
    return redirect_to_trip(trip)


@app.post("/trip/{trip_id}/expense/{expense_id}/delete")
def delete_expense(trip_id: str,
                   expense_id: str,
                   storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)

    if not trip.remove_expense(expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")

    storage.update_trip(trip)
    logger.info("Removed expense %s from trip %s", expense_id, trip.id)
    return redirect_to_trip(trip)


@app.get("/trip/{trip_id}/export/csv")
async def download_csv(trip_id: str,
                       storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)
    content = export_csv(trip, calculate_summary(trip))

    return Response(
        content=content.encode('utf-8-sig'),
        media_type="text/csv",
        headers={
            "Content-Disposition":
            f"attachment; filename={export_filename(trip, 'csv')}"
        })


@app.get("/trip/{trip_id}/export/pdf")
async def download_pdf(trip_id: str,
                       storage: InMemoryStorage = Depends(get_storage)):
    trip = load_trip(trip_id, storage)
    content = export_pdf(trip, calculate_summary(trip))

    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition":
            f"attachment; filename={export_filename(trip, 'pdf')}"
        })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
