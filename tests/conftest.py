"""
Pytest configuration and fixtures for gbancord tests.

The engine fixtures wire :class:`GbanEngine` to in-memory fakes of its
collaborators so tests can script failures and inspect every call.
"""

import asyncio
import datetime
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from gbancord.configuration.app_configuration import GbanSettings  # noqa: E402
from gbancord.datatypes.discord_datatypes import GuildID, UserID  # noqa: E402
from gbancord.datatypes.gban_datatypes import BanRecord, PendingBanRecord  # noqa: E402
from gbancord.engine.gban_engine import GbanEngine  # noqa: E402


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class FakeStore:
    """Dict-backed Ban Store; set ``fail_writes`` to make commits raise."""

    def __init__(self) -> None:
        self.active: Dict[UserID, BanRecord] = {}
        self.pending: Dict[UserID, PendingBanRecord] = {}
        self.fail_writes = False

    def _check(self) -> None:
        if self.fail_writes:
            raise RuntimeError("database is locked")

    async def upsert_active(self, subject, reason, actor):
        self._check()
        self.active[subject] = BanRecord(subject, reason, actor, _now())
        self.pending.pop(subject, None)

    async def delete_active(self, subject):
        self._check()
        return self.active.pop(subject, None) is not None

    async def get_active(self, subject):
        return self.active.get(subject)

    async def upsert_pending(self, subject, reason, actor):
        self._check()
        self.pending[subject] = PendingBanRecord(subject, reason, actor, _now())

    async def delete_pending(self, subject):
        self._check()
        return self.pending.pop(subject, None) is not None

    async def get_pending(self, subject):
        return self.pending.get(subject)

    async def append_reason(self, subject, addition, actor):
        record = self.active.get(subject)
        if record is None:
            return None
        updated = BanRecord(record.user_id, f"{record.reason} | add. {actor}: {addition}", record.banned_by, record.created_at)
        self.active[subject] = updated
        return updated


class FakeDirectory:
    def __init__(self, targets: Optional[List[GuildID]] = None) -> None:
        self.targets: List[GuildID] = list(targets or [])
        self.error: Optional[Exception] = None
        self.calls = 0

    async def list_targets(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.targets)


class FakeActuator:
    """Records ``(operation, target, subject)`` for every call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, GuildID, UserID]] = []
        self.failing: Set[GuildID] = set()
        self.raising: Set[GuildID] = set()

    async def _apply(self, operation, target, subject):
        self.calls.append((operation, target, subject))
        await asyncio.sleep(0)
        if target in self.raising:
            raise RuntimeError(f"boom in {target}")
        return target not in self.failing

    async def apply_ban(self, target, subject, reason):
        return await self._apply("ban", target, subject)

    async def apply_unban(self, target, subject, reason):
        return await self._apply("unban", target, subject)

    def subjects(self, operation: str = "ban") -> List[UserID]:
        return [subject for op, _, subject in self.calls if op == operation]


class FakeNotifier:
    def __init__(self) -> None:
        self.posts: List[str] = []

    async def post(self, message):
        self.posts.append(message)

    def tagged(self, hashtag: str) -> List[str]:
        return [post for post in self.posts if hashtag in post]


class FakeStatus:
    def __init__(self) -> None:
        self.edits: List[str] = []

    async def edit(self, text):
        self.edits.append(text)

    @property
    def last(self) -> str:
        return self.edits[-1]


@dataclass
class EngineHarness:
    engine: GbanEngine
    store: FakeStore
    directory: FakeDirectory
    actuator: FakeActuator
    notifier: FakeNotifier
    founders: List[str] = field(default_factory=list)


def guild_ids(count: int) -> List[GuildID]:
    return [GuildID(1000 + index) for index in range(count)]


@pytest.fixture()
def fast_settings() -> GbanSettings:
    return GbanSettings(
        ban_delay_seconds=0,
        min_update_interval_seconds=0,
        queue_yield_seconds=0,
        approval_timeout_seconds=900,
        ban_operation_timeout_seconds=1,
        directory_timeout_seconds=1,
    )


@pytest.fixture()
def make_harness(fast_settings):
    """Factory building an engine over fresh fakes with ``targets`` guilds."""
    def factory(targets: int = 10, founders=("900",), settings: Optional[GbanSettings] = None) -> EngineHarness:
        founder_list = [founders] if isinstance(founders, str) else list(founders)
        store = FakeStore()
        directory = FakeDirectory(guild_ids(targets))
        actuator = FakeActuator()
        notifier = FakeNotifier()
        engine = GbanEngine(
            store=store,
            directory=directory,
            actuator=actuator,
            notifier=notifier,
            settings=settings or fast_settings,
            founders=founder_list,
        )
        harness = EngineHarness(engine, store, directory, actuator, notifier, founder_list)
        return harness

    return factory


@pytest.fixture()
def status() -> FakeStatus:
    return FakeStatus()
