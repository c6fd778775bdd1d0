"""
Replica events and the reducer that applies them.

apply_event never mutates its input: it returns a new Month so snapshots
already handed to readers stay unchanged. Every lookup is by id at the
time the event is applied, never by a position captured earlier.
"""

import copy
from dataclasses import dataclass, replace

from .journal import BulletPoint, Day, Month, find_bullet_index_by_id


@dataclass(frozen=True)
class MonthLoaded:
    month: Month


@dataclass(frozen=True)
class DayHydrated:
    day: Day


@dataclass(frozen=True)
class DaysSorted:
    pass


@dataclass(frozen=True)
class DayInserted:
    day: Day


@dataclass(frozen=True)
class BulletAppended:
    day_id: str
    bullet: BulletPoint


@dataclass(frozen=True)
class BulletReplaced:
    day_id: str
    bullet: BulletPoint


@dataclass(frozen=True)
class BulletRemoved:
    day_id: str
    bullet_id: str


@dataclass(frozen=True)
class MoodReplaced:
    day_of_month: int
    mood: int


@dataclass(frozen=True)
class BulletMarkedDirty:
    day_id: str
    bullet_id: str
    dirty: bool = True


ReplicaEvent = (
    MonthLoaded
    | DayHydrated
    | DaysSorted
    | DayInserted
    | BulletAppended
    | BulletReplaced
    | BulletRemoved
    | MoodReplaced
    | BulletMarkedDirty
)


def apply_event(month: Month, event: ReplicaEvent) -> Month:
    """Return the month that results from applying event to month."""
    if isinstance(event, MonthLoaded):
        return copy.deepcopy(event.month)

    new = copy.deepcopy(month)

    match event:
        case DayHydrated(day=day):
            index = new.find_day_index_by_id(day.id)
            if index is None:
                return month
            existing = new.find_day_by_day_of_month(day.day_of_month) if day.day_of_month is not None else None
            if existing is not None and existing.id != day.id:
                # Day numbers stay unique; the day already shown wins
                del new.days[index]
            else:
                new.days[index] = copy.deepcopy(day)
        case DaysSorted():
            new.sort_days()
        case DayInserted(day=day):
            if new.find_day_by_id(day.id):
                return month
            if day.day_of_month is not None and new.find_day_by_day_of_month(day.day_of_month):
                return month
            new.insert_day_sorted(copy.deepcopy(day))
        case BulletAppended(day_id=day_id, bullet=bullet):
            target = new.find_day_by_id(day_id)
            if target is None or find_bullet_index_by_id(target, bullet.id) is not None:
                return month
            target.bullet_points.append(replace(bullet))
        case BulletReplaced(day_id=day_id, bullet=bullet):
            target = new.find_day_by_id(day_id)
            index = find_bullet_index_by_id(target, bullet.id) if target else None
            if index is None:
                return month
            target.bullet_points[index] = replace(bullet)
        case BulletRemoved(day_id=day_id, bullet_id=bullet_id):
            target = new.find_day_by_id(day_id)
            index = find_bullet_index_by_id(target, bullet_id) if target else None
            if index is None:
                return month
            del target.bullet_points[index]
        case MoodReplaced(day_of_month=day_of_month, mood=mood):
            new.replace_mood(day_of_month - 1, mood)
        case BulletMarkedDirty(day_id=day_id, bullet_id=bullet_id, dirty=dirty):
            target = new.find_day_by_id(day_id)
            index = find_bullet_index_by_id(target, bullet_id) if target else None
            if index is None:
                return month
            target.bullet_points[index].dirty = dirty
        case _:
            raise TypeError(f"Unknown replica event: {event!r}")

    return new
