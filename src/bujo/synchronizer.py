"""
Month synchronizer - keeps one month's replica in step with the remote store.

Intents from the presentation layer are plain methods: they change the
replica immediately and schedule the remote calls as tasks on the running
event loop. Every completion goes through apply_event, and completions for
an abandoned month session are dropped instead of applied.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable

from .core.dates import InvalidInput, DatePrefix, is_current_month, parse_date_prefix, validate_day
from .core.journal import BulletPoint, Day, Month, NEW_BULLET_ID
from .core.reducer import (
    BulletAppended,
    BulletMarkedDirty,
    BulletRemoved,
    BulletReplaced,
    DayHydrated,
    DayInserted,
    DaysSorted,
    MonthLoaded,
    MoodReplaced,
    ReplicaEvent,
    apply_event,
)
from .ports.journal_gateway import JournalGateway, NetworkFailure

logger = logging.getLogger(__name__)

MOOD_VALUES = (0, 1, 2, 3)


class StaleResponse(Exception):
    """Raised when a completion belongs to a month session that is no longer selected."""

    pass


class SessionPhase(Enum):
    SELECTING = "selecting"
    FETCHING_MONTH = "fetching_month"
    HYDRATING_DAYS = "hydrating_days"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class MonthSession:
    """One selection of (month, year). generation tells reselections apart."""

    month_index: int
    year: int
    generation: int


@dataclass(frozen=True)
class SyncError:
    """A remote call that failed during the current session."""

    operation: str
    message: str
    read: bool = False


@dataclass
class PendingOperation:
    """A fire-and-forget persist call, kept so it can be retried after failure."""

    name: str
    method: str
    path: str
    body: dict
    session: MonthSession
    key: tuple
    day_id: str | None = None
    bullet_id: str | None = None


@dataclass(frozen=True)
class SyncSnapshot:
    """What the presentation layer renders. Never mutated after emission."""

    month: Month
    phase: SessionPhase
    active_day: int | None
    errors: tuple[SyncError, ...] = ()
    pending_retries: int = 0

    @property
    def loading(self) -> bool:
        return self.phase in (SessionPhase.FETCHING_MONTH, SessionPhase.HYDRATING_DAYS)


Listener = Callable[[SyncSnapshot], None]


class MonthSynchronizer:
    """
    Owns the month replica and routes every user intent through it.

    Phases per session: SELECTING -> FETCHING_MONTH -> HYDRATING_DAYS -> READY,
    restarted by every select_month call.
    """

    def __init__(
        self,
        gateway: JournalGateway,
        today: Callable[[], date] = date.today,
        max_concurrent_day_fetches: int = 0,
        on_navigate: Callable[[int], None] | None = None,
    ):
        self.gateway = gateway
        self.on_navigate = on_navigate
        self._today = today

        current = today()
        self.session: MonthSession | None = None
        self.month = Month(month_index=current.month - 1, year=current.year)
        self.phase = SessionPhase.SELECTING
        self.active_day: int | None = current.day
        self.errors: list[SyncError] = []
        self.failed_operations: list[PendingOperation] = []

        self._generation = 0
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        self._day_fetch_limit = (
            asyncio.Semaphore(max_concurrent_day_fetches) if max_concurrent_day_fetches > 0 else None
        )
        self._reset_hydration()

    # ============== Observation ==============

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def snapshot(self) -> SyncSnapshot:
        return SyncSnapshot(
            month=self.month,
            phase=self.phase,
            active_day=self.active_day,
            errors=tuple(self.errors),
            pending_retries=len(self.failed_operations),
        )

    async def drain(self) -> None:
        """Wait until every in-flight remote call, including follow-ups, has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _emit(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def _dispatch(self, event: ReplicaEvent) -> None:
        self.month = apply_event(self.month, event)
        self._emit()

    # ============== Session bookkeeping ==============

    def _reset_hydration(self) -> None:
        self._hydration_total = 0
        self._hydration_settled = 0
        self._hydration_failed = False
        self._today_checked = False
        self._deferred_days: list[int] = []
        self._appends_after_load: dict[str, list[BulletPoint]] = {}

    def _is_current(self, session: MonthSession) -> bool:
        return session == self.session

    def _ensure_current(self, session: MonthSession) -> None:
        if not self._is_current(session):
            raise StaleResponse(
                f"response for {session.month_index + 1}/{session.year} "
                f"(session {session.generation}) arrived after the month changed"
            )

    def _require_loaded(self) -> MonthSession:
        if self.session is None or self.month.id is None:
            raise RuntimeError("No month loaded yet. Call select_month first.")
        return self.session

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Awaitable[Any]) -> None:
        try:
            await coro
        except StaleResponse as e:
            logger.debug(f"Dropped stale {e}")

    def _record_error(self, operation: str, error: NetworkFailure, read: bool = False) -> None:
        logger.warning(f"{operation} failed: {error}")
        self.errors.append(SyncError(operation=operation, message=str(error), read=read))

    def _activate(self, day_of_month: int, navigate: bool = False) -> None:
        self.active_day = day_of_month
        self._emit()
        if navigate and self.on_navigate:
            self.on_navigate(day_of_month)

    # ============== Month selection and hydration ==============

    def select_month(self, month_index: int, year: int) -> MonthSession:
        """Start a new month session, discarding the current replica."""
        if not 0 <= month_index <= 11:
            raise InvalidInput(f"Month index must be 0-11, got {month_index}")

        self._generation += 1
        session = MonthSession(month_index=month_index, year=year, generation=self._generation)
        self.session = session
        self.month = Month(month_index=month_index, year=year)
        self.phase = SessionPhase.FETCHING_MONTH
        self.errors = []
        self._reset_hydration()
        logger.info(f"Selecting {month_index + 1}/{year} (session {session.generation})")
        self._emit()

        self._spawn(self._load_month(session))
        return session

    async def _load_month(self, session: MonthSession) -> None:
        """Fetch the month, creating it when the store has none, then hydrate its days."""
        try:
            data = await self.gateway.get(f"months/{session.year}/{session.month_index}")
            self._ensure_current(session)
            if data is None:
                logger.info(f"No month {session.month_index + 1}/{session.year} on the server, creating it")
                data = await self.gateway.post(
                    "months", {"month": session.month_index, "year": session.year}
                )
                self._ensure_current(session)
        except NetworkFailure as e:
            self._ensure_current(session)
            self._record_error("fetch_month", e, read=True)
            self.phase = SessionPhase.FAILED
            self._emit()
            return

        month = Month.from_api(data, session.month_index, session.year)
        self._hydration_total = len(month.days)
        self.phase = SessionPhase.HYDRATING_DAYS if month.days else SessionPhase.READY
        self._dispatch(MonthLoaded(month))

        if not month.days:
            await self._create_today_if_missing(session)
            return

        for day in month.days:
            self._spawn(self._hydrate_day(session, day.id))

    async def _fetch_day(self, day_id: str) -> Any:
        if self._day_fetch_limit is None:
            return await self.gateway.get(f"days/{day_id}")
        async with self._day_fetch_limit:
            return await self.gateway.get(f"days/{day_id}")

    async def _hydrate_day(self, session: MonthSession, day_id: str) -> None:
        try:
            data = await self._fetch_day(day_id)
        except NetworkFailure as e:
            self._ensure_current(session)
            self._record_error("fetch_day", e, read=True)
            self._hydration_failed = True
        else:
            self._ensure_current(session)
            if data is None:
                logger.warning(f"Day {day_id} listed in month but missing on the server")
                self._hydration_failed = True
            else:
                self._dispatch(DayHydrated(Day.from_api(data, day_id)))
                for bullet in self._appends_after_load.pop(day_id, []):
                    self._dispatch(BulletAppended(day_id, bullet))

        self._hydration_settled += 1
        logger.debug(f"Hydrated {self._hydration_settled}/{self._hydration_total} days")
        if self._hydration_settled >= self._hydration_total:
            self.phase = SessionPhase.READY
            # Completion order is arbitrary, so order is only fixed once all have landed
            self._dispatch(DaysSorted())
            await self._create_today_if_missing(session)
            self._replay_deferred_days()

    def _replay_deferred_days(self) -> None:
        days, self._deferred_days = self._deferred_days, []
        for day_of_month in days:
            try:
                self.add_day(day_of_month)
            except InvalidInput as e:
                logger.warning(f"add_day {day_of_month} dropped: {e}")
                self.errors.append(SyncError(operation="add_day", message=str(e)))
                self._emit()

    async def _create_today_if_missing(self, session: MonthSession) -> None:
        """Create today's day once per session when viewing the current month without it."""
        if self._today_checked:
            return
        self._today_checked = True

        today = self._today()
        if not is_current_month(session.month_index, session.year, today):
            return
        if self.month.find_day_by_day_of_month(today.day) is not None:
            return
        if self._hydration_failed:
            logger.info("Skipping creation of today; some days could not be loaded")
            return

        logger.info(f"Creating today ({today.isoformat()})")
        await self._create_day(session, today.day)

    async def _create_day(self, session: MonthSession, day_of_month: int) -> Day | None:
        month_id = self.month.id
        try:
            data = await self.gateway.post(f"months/{month_id}", {"day": day_of_month})
        except NetworkFailure as e:
            self._ensure_current(session)
            self._record_error("create_day", e)
            return None

        self._ensure_current(session)
        day = Day(id=data["_id"], day_of_month=data.get("day", day_of_month), loaded=True)
        self._dispatch(DayInserted(day))
        return day

    # ============== Day intents ==============

    def set_active_day(self, day_of_month: int) -> None:
        self._activate(day_of_month)

    def add_day(self, day_of_month: int) -> None:
        """
        Jump to a day, creating it on the server first when it does not exist.

        While days are still loading the intent waits for hydration to
        finish, since an unloaded day may turn out to be this one.
        """
        session = self._require_loaded()
        validate_day(day_of_month, session.month_index, session.year)

        if self.month.find_day_by_day_of_month(day_of_month) is not None:
            self._activate(day_of_month, navigate=True)
            return

        if not self.month.all_loaded:
            if self.phase is SessionPhase.HYDRATING_DAYS:
                logger.debug(f"Deferring add_day {day_of_month} until days are loaded")
                self._deferred_days.append(day_of_month)
                return
            raise InvalidInput("Some days could not be loaded. Reload the month before adding days")

        self._spawn(self._add_day(session, day_of_month))

    async def _add_day(self, session: MonthSession, day_of_month: int) -> None:
        day = await self._create_day(session, day_of_month)
        if day is not None:
            self._activate(day.day_of_month, navigate=True)

    # ============== Bullet intents ==============

    def add_bullet(self, day: Day, draft: BulletPoint) -> None:
        """
        Save a new bullet.

        A leading date such as '5.3.2024:' sends the bullet to that date
        instead of day, whichever month it falls in.
        """
        session = self._require_loaded()
        value = draft.value.strip()
        if not value:
            raise InvalidInput("Bullet text is empty")

        prefix = parse_date_prefix(value, default_year=session.year)
        if prefix is not None and prefix.remainder:
            bullet = replace(draft, id=NEW_BULLET_ID, value=prefix.remainder, checked=False)
            self._spawn(self._add_dated_bullet(session, prefix, bullet))
            return

        bullet = replace(draft, id=NEW_BULLET_ID, value=value)
        self._spawn(self._add_bullet(session, day.id, bullet))

    async def _post_bullet(self, day_id: str, bullet: BulletPoint) -> BulletPoint | None:
        try:
            data = await self.gateway.post(f"days/{day_id}", bullet.to_api())
        except NetworkFailure as e:
            logger.warning(f"add_bullet failed: {e}")
            return None
        return replace(bullet, id=data["_id"])

    async def _add_bullet(self, session: MonthSession, day_id: str, bullet: BulletPoint) -> None:
        saved = await self._post_bullet(day_id, bullet)
        self._ensure_current(session)
        if saved is None:
            self.errors.append(SyncError("add_bullet", f"Could not save '{bullet.value}'"))
            self._emit()
            return

        day = self.month.find_day_by_id(day_id)
        if day is None:
            return
        self.active_day = day.day_of_month
        self._dispatch(BulletAppended(day_id, saved))

    async def _add_dated_bullet(self, session: MonthSession, prefix: DatePrefix, bullet: BulletPoint) -> None:
        in_view = (prefix.month_index, prefix.year) == (session.month_index, session.year)

        try:
            data = await self.gateway.get(f"days/{prefix.day}/{prefix.month_index}/{prefix.year}")
        except NetworkFailure as e:
            self._ensure_current(session)
            self._record_error("fetch_day_by_date", e)
            return
        if data is None:
            self._ensure_current(session)
            self.errors.append(SyncError("fetch_day_by_date", f"No day for {prefix.day}.{prefix.month_index + 1}.{prefix.year}"))
            self._emit()
            return
        target = Day.from_api(data)

        if in_view and self._is_current(session):
            if self.month.find_day_by_day_of_month(target.day_of_month) is None:
                self.active_day = target.day_of_month
                self._dispatch(DayInserted(target))

        # The bullet is persisted even if the user has moved to another month meanwhile
        saved = await self._post_bullet(target.id, bullet)
        self._ensure_current(session)
        if saved is None:
            self.errors.append(SyncError("add_bullet", f"Could not save '{bullet.value}'"))
            self._emit()
            return

        if not in_view:
            logger.info(f"Saved bullet to {prefix.day}.{prefix.month_index + 1}.{prefix.year}")
            return
        local = self.month.find_day_by_id(target.id) or self.month.find_day_by_day_of_month(target.day_of_month)
        if local is None:
            return
        if not local.loaded:
            # The pending load was requested before this POST and will not contain it
            self._appends_after_load.setdefault(local.id, []).append(saved)
            return
        self._dispatch(BulletAppended(local.id, saved))

    def update_bullet(self, day: Day, bullet: BulletPoint) -> None:
        """Replace a bullet locally, then persist it."""
        session = self._require_loaded()
        if bullet.is_draft:
            raise ValueError("Unsaved bullets are added with add_bullet")

        self._dispatch(BulletReplaced(day.id, bullet))
        self._persist_later(
            PendingOperation(
                name="update_bullet",
                method="POST",
                path=f"days/{day.id}/{bullet.id}",
                body=bullet.to_api(),
                session=session,
                key=("bullet", bullet.id),
                day_id=day.id,
                bullet_id=bullet.id,
            )
        )

    def delete_bullet(self, day: Day, bullet: BulletPoint) -> None:
        """Remove a bullet locally, then delete it on the server."""
        session = self._require_loaded()
        self._dispatch(BulletRemoved(day.id, bullet.id))
        self._persist_later(
            PendingOperation(
                name="delete_bullet",
                method="DELETE",
                path=f"days/{day.id}",
                body={"id": bullet.id},
                session=session,
                key=("bullet", bullet.id),
                day_id=day.id,
            )
        )

    # ============== Mood intents ==============

    def set_mood(self, day_of_month: int, mood: int) -> None:
        session = self._require_loaded()
        validate_day(day_of_month, session.month_index, session.year)
        if mood not in MOOD_VALUES:
            raise InvalidInput(f"Mood must be one of {MOOD_VALUES}, got {mood}")

        self._dispatch(MoodReplaced(day_of_month, mood))
        self._persist_later(
            PendingOperation(
                name="set_mood",
                method="POST",
                path=f"months/mood/{self.month.id}",
                # The store indexes mood slots from zero
                body={"day": day_of_month - 1, "mood": mood},
                session=session,
                key=("mood", self.month.id, day_of_month),
            )
        )

    def cycle_mood(self, day_of_month: int) -> int:
        """Advance a day's mood none -> good -> average -> bad -> none."""
        mood = (self.month.mood_for(day_of_month) + 1) % len(MOOD_VALUES)
        self.set_mood(day_of_month, mood)
        return mood

    # ============== Persistence of optimistic changes ==============

    def _persist_later(self, op: PendingOperation) -> None:
        # A newer change to the same entity supersedes an older failed one
        self.failed_operations = [f for f in self.failed_operations if f.key != op.key]
        self._spawn(self._persist(op))

    async def _persist(self, op: PendingOperation) -> bool:
        try:
            if op.method == "DELETE":
                await self.gateway.delete(op.path, op.body)
            else:
                await self.gateway.post(op.path, op.body)
        except NetworkFailure as e:
            logger.warning(f"{op.name} failed, keeping local change: {e}")
            self.failed_operations.append(op)
            if not self._is_current(op.session):
                return False
            self.errors.append(SyncError(operation=op.name, message=str(e)))
            if op.bullet_id:
                self._dispatch(BulletMarkedDirty(op.day_id, op.bullet_id))
            else:
                self._emit()
            return False

        if op.bullet_id and self._is_current(op.session):
            day = self.month.find_day_by_id(op.day_id)
            if day and any(b.id == op.bullet_id and b.dirty for b in day.bullet_points):
                self._dispatch(BulletMarkedDirty(op.day_id, op.bullet_id, dirty=False))
        return True

    def retry_failed(self) -> int:
        """Re-send every failed persist call. Returns how many were retried."""
        ops, self.failed_operations = self.failed_operations, []
        for op in ops:
            self._spawn(self._persist(op))
        if ops:
            logger.info(f"Retrying {len(ops)} failed operations")
        return len(ops)
