import json
import logging
import os
import tempfile
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from models import Trip

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class TripStore(BaseModel):
    """On-disk layout of the trip store."""
    trips: List[Trip] = Field(default_factory=list)
    current_trip_id: Optional[str] = None


class InMemoryStorage:
    def __init__(self):
        self.trips: Dict[str, Trip] = {}
        self.current_trip_id: Optional[str] = None

    def create_trip(self, trip: Trip) -> Trip:
        self.trips[trip.id] = trip
        self.current_trip_id = trip.id
        self.save()
        return trip

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        return self.trips.get(trip_id)

    def update_trip(self, trip: Trip) -> Trip:
        self.trips[trip.id] = trip
        self.save()
        return trip

    def trip_exists(self, trip_id: str) -> bool:
        return trip_id in self.trips

    def list_trips(self) -> List[Trip]:
        return list(self.trips.values())

    def set_current_trip(self, trip_id: str) -> None:
        if trip_id not in self.trips:
            raise KeyError(trip_id)
        if self.current_trip_id != trip_id:
            self.current_trip_id = trip_id
            self.save()

    def get_current_trip(self) -> Optional[Trip]:
        trip = self.trips.get(self.current_trip_id or "")
        if trip is not None:
            return trip

        # Remembered trip is gone, fall back to the first one
        if not self.trips:
            return None
        first = next(iter(self.trips.values()))
        self.set_current_trip(first.id)
        return first

    def save(self) -> None:
        pass


class JsonFileStorage(InMemoryStorage):
    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            logger.info("No trip store at %s, starting empty", self.path)
            self.trips = {}
            self.current_trip_id = None
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                store = TripStore.model_validate_json(f.read())
        except (OSError, ValidationError) as e:
            raise StorageError(f"Cannot read trip store {self.path}: {e}")

        self.trips = {trip.id: trip for trip in store.trips}
        self.current_trip_id = store.current_trip_id
        logger.info("Loaded %d trips from %s", len(self.trips), self.path)

    def save(self) -> None:
        store = TripStore(trips=self.list_trips(),
                          current_trip_id=self.current_trip_id)
        directory = os.path.dirname(os.path.abspath(self.path))

        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(store.model_dump(mode="json"), f,
                          ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info("Saved %d trips to %s", len(self.trips), self.path)


def create_storage(path: str) -> InMemoryStorage:
    if not path:
        return InMemoryStorage()
    return JsonFileStorage(path)
