import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from gbancord import main
from gbancord.engine.gban_engine import GbanEngine
from gbancord.scheduler.guild_prune_scheduler import GuildPruneScheduler


class FakeBot:
    def __init__(self, *args, **kwargs) -> None:
        self.kwargs = kwargs
        self.cogs = []
        self._close = AsyncMock()
        self._closed = False

    def is_closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        self._closed = True
        await self._close()

    def add_cog(self, cog) -> None:
        self.cogs.append(cog)


def fake_connection():
    connection = MagicMock()
    connection.open = AsyncMock()
    connection.close = AsyncMock()
    return connection


def fake_runtime(connection=None):
    return main.Runtime(
        bot=FakeBot(),
        connection=connection or fake_connection(),
        engine=MagicMock(shutdown=AsyncMock()),
        prune_scheduler=MagicMock(shutdown=AsyncMock()),
    )


@pytest.mark.asyncio
async def test_async_main_successful_shutdown(monkeypatch):
    connection = fake_connection()
    runtime = fake_runtime(connection)
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "ConnectionManager", lambda: connection)
    monkeypatch.setattr(main, "build_runtime", lambda conn: runtime)
    start_bot_mock = AsyncMock()
    monkeypatch.setattr(main, "start_bot", start_bot_mock)
    shutdown_mock = AsyncMock()
    monkeypatch.setattr(main, "shutdown_runtime", shutdown_mock)

    result = await main.async_main()

    assert result == 0
    connection.open.assert_awaited_once()
    start_bot_mock.assert_awaited_once_with(runtime.bot, "token")
    shutdown_mock.assert_awaited_once_with(runtime)


@pytest.mark.asyncio
async def test_async_main_database_failure(monkeypatch):
    connection = fake_connection()
    connection.open.side_effect = RuntimeError("disk full")
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "ConnectionManager", lambda: connection)
    start_bot_mock = AsyncMock()
    monkeypatch.setattr(main, "start_bot", start_bot_mock)

    assert await main.async_main() == 1
    start_bot_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_async_main_handles_initialization_failure(monkeypatch):
    connection = fake_connection()
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "ConnectionManager", lambda: connection)

    def broken_runtime(conn):
        raise RuntimeError("init failed")

    monkeypatch.setattr(main, "build_runtime", broken_runtime)

    assert await main.async_main() == 1
    connection.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_main_reports_runtime_error(monkeypatch):
    runtime = fake_runtime()
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "ConnectionManager", fake_connection)
    monkeypatch.setattr(main, "build_runtime", lambda conn: runtime)
    monkeypatch.setattr(main, "start_bot", AsyncMock(side_effect=RuntimeError("gateway")))
    shutdown_mock = AsyncMock()
    monkeypatch.setattr(main, "shutdown_runtime", shutdown_mock)

    assert await main.async_main() == 1
    shutdown_mock.assert_awaited_once_with(runtime)


@pytest.mark.asyncio
async def test_shutdown_runtime_continues_after_engine_failure():
    runtime = fake_runtime()
    runtime.engine.shutdown.side_effect = RuntimeError("stuck")

    await main.shutdown_runtime(runtime)

    runtime.prune_scheduler.shutdown.assert_awaited_once()
    runtime.bot._close.assert_awaited_once()
    runtime.connection.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_build_runtime_wires_engine_and_cogs(monkeypatch):
    monkeypatch.setattr(main, "discord", SimpleNamespace(Bot=FakeBot))
    monkeypatch.setattr(main, "build_intents", lambda: "intents")

    runtime = main.build_runtime(fake_connection())

    assert isinstance(runtime.engine, GbanEngine)
    assert isinstance(runtime.prune_scheduler, GuildPruneScheduler)
    assert runtime.bot.kwargs == {"intents": "intents"}
    assert {type(cog).__name__ for cog in runtime.bot.cogs} == {"EventsListenerCog", "GbanCog"}


@pytest.mark.asyncio
async def test_start_bot_swallows_cancellation():
    bot = SimpleNamespace(start=AsyncMock(side_effect=asyncio.CancelledError()))

    await main.start_bot(bot, "token")

    bot.start.assert_awaited_once_with("token")


def test_main_translates_system_exit(monkeypatch):
    async def exits():
        raise SystemExit("bad")

    monkeypatch.setattr(main, "async_main", exits)

    assert main.main() == 1


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit):
        main.load_environment()

    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")
    assert main.load_environment() == "abc"
