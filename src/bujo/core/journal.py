"""Pure journal domain model - months, days and bullet points. No I/O."""

from dataclasses import dataclass, field
from enum import Enum

from .dates import days_in_month

NEW_BULLET_ID = "new"
MAX_INDENT = 4


class BulletKind(str, Enum):
    NOTE = "NOTE"
    TASK = "TASK"
    EVENT = "EVENT"

    @classmethod
    def parse(cls, value: str | None) -> "BulletKind":
        """Map a remote bullet_type to a kind, defaulting to NOTE."""
        try:
            return cls(value)
        except ValueError:
            return cls.NOTE


@dataclass
class BulletPoint:
    """A single journal entry within a day."""

    id: str
    kind: BulletKind = BulletKind.NOTE
    value: str = ""
    indent: int = 0
    checked: bool = False
    dirty: bool = False

    def __post_init__(self):
        self.indent = clamp_indent(self.indent)

    @property
    def is_draft(self) -> bool:
        return self.id == NEW_BULLET_ID

    def marker(self) -> str:
        """Display prefix for the bullet."""
        if self.kind is BulletKind.TASK:
            return "[x]" if self.checked else "[ ]"
        if self.kind is BulletKind.EVENT:
            return "*"
        return "-"

    def to_api(self) -> dict:
        """Request body for add/update bullet calls."""
        return {
            "value": self.value,
            "bullet_type": self.kind.value,
            "checked": self.checked,
            "indent": self.indent,
        }

    @classmethod
    def from_api(cls, data: dict) -> "BulletPoint":
        """Create BulletPoint from a remote bullet_points entry."""
        return cls(
            id=data["_id"],
            kind=BulletKind.parse(data.get("bullet_type")),
            value=data.get("value", "") or "",
            indent=data.get("indent", 0) or 0,
            checked=bool(data.get("checked", False)),
        )


@dataclass
class Day:
    """One day of a month. Placeholders have no day number until hydrated."""

    id: str
    day_of_month: int | None = None
    loaded: bool = False
    bullet_points: list[BulletPoint] = field(default_factory=list)

    @classmethod
    def placeholder(cls, day_id: str) -> "Day":
        return cls(id=day_id)

    @classmethod
    def from_api(cls, data: dict, day_id: str | None = None) -> "Day":
        """Create a loaded Day from a remote day object."""
        return cls(
            id=day_id or data["_id"],
            day_of_month=data["day"],
            loaded=True,
            bullet_points=[BulletPoint.from_api(b) for b in data.get("bullet_points") or []],
        )


@dataclass
class Month:
    """
    In-memory replica of one month.

    Days are kept ascending by day_of_month after each structural change.
    The mood vector has exactly one slot per calendar day.
    """

    month_index: int
    year: int
    id: str | None = None
    days: list[Day] = field(default_factory=list)
    mood: list[int] = field(default_factory=list)

    def __post_init__(self):
        self.mood = normalize_mood(self.mood, self.year, self.month_index)

    @property
    def num_days(self) -> int:
        return days_in_month(self.year, self.month_index)

    @property
    def all_loaded(self) -> bool:
        return all(d.loaded for d in self.days)

    @classmethod
    def from_api(cls, data: dict, month_index: int, year: int) -> "Month":
        """
        Create a Month from a get/create month response.

        Day ids become unloaded placeholders; a missing or empty mood
        vector becomes all zeros.
        """
        return cls(
            month_index=month_index,
            year=year,
            id=data["_id"],
            days=[Day.placeholder(day_id) for day_id in data.get("days") or []],
            mood=list(data.get("mood") or []),
        )

    def find_day_by_day_of_month(self, day_of_month: int) -> Day | None:
        return next((d for d in self.days if d.day_of_month == day_of_month), None)

    def find_day_by_id(self, day_id: str) -> Day | None:
        return next((d for d in self.days if d.id == day_id), None)

    def find_day_index_by_id(self, day_id: str) -> int | None:
        for i, day in enumerate(self.days):
            if day.id == day_id:
                return i
        return None

    def insert_day_sorted(self, day: Day) -> None:
        """Insert a day keeping ascending day_of_month order."""
        if day.day_of_month is not None and self.find_day_by_day_of_month(day.day_of_month):
            raise ValueError(f"Day {day.day_of_month} already exists in {self.month_index + 1}/{self.year}")
        self.days.append(day)
        self.sort_days()

    def sort_days(self) -> None:
        # Placeholders have no day number yet, keep them at the end
        self.days.sort(key=lambda d: (d.day_of_month is None, d.day_of_month or 0))

    def replace_mood(self, index: int, value: int) -> None:
        if not 0 <= index < len(self.mood):
            raise IndexError(f"Mood index {index} out of range for {len(self.mood)} days")
        self.mood[index] = value

    def mood_for(self, day_of_month: int) -> int:
        """Mood for a day of month; 0 when out of range."""
        index = day_of_month - 1
        if 0 <= index < len(self.mood):
            return self.mood[index]
        return 0


def find_bullet_index_by_id(day: Day, bullet_id: str) -> int | None:
    for i, bullet in enumerate(day.bullet_points):
        if bullet.id == bullet_id:
            return i
    return None


def clamp_indent(indent: int) -> int:
    return max(0, min(MAX_INDENT, indent))


def normalize_mood(mood: list[int], year: int, month_index: int) -> list[int]:
    """Pad or truncate a mood vector to the month length, zero-filling."""
    num_days = days_in_month(year, month_index)
    values = [m if m in (0, 1, 2, 3) else 0 for m in mood[:num_days]]
    return values + [0] * (num_days - len(values))
