"""
Gban Discord Bot
================

A Discord bot that lets a small group of founders ban a user from every
server the bot is in with a single command, and lift such bans only when a
second founder approves.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. GBANCORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("GBANCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

import discord
from dotenv import load_dotenv

from gbancord.bot.discord_adapters import DiscordBanActuator, DiscordLogNotifier
from gbancord.configuration.app_configuration import app_config
from gbancord.database.db_connection import ConnectionManager
from gbancord.engine.gban_engine import GbanEngine
from gbancord.scheduler.guild_prune_scheduler import GuildPruneScheduler
from gbancord.services.ban_store import SqliteBanStore
from gbancord.services.log_channel_service import LogChannelRegistry
from gbancord.services.target_directory import SqliteTargetDirectory
from gbancord.util.logger import get_logger, handle_exception


logger = get_logger("main")


@dataclass
class Runtime:
    """Everything ``async_main`` builds and ``shutdown_runtime`` tears down."""
    bot: discord.Bot
    connection: ConnectionManager
    engine: GbanEngine
    prune_scheduler: GuildPruneScheduler


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild tracking, member joins and message activity."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.messages = True
    return intents


def build_runtime(connection: ConnectionManager) -> Runtime:
    """Instantiate the bot, the gban engine and its collaborators, and register the cogs."""
    from gbancord.bot.cogs import events_listener, gban_cmds

    bot = discord.Bot(intents=build_intents())

    directory = SqliteTargetDirectory(connection)
    log_channels = LogChannelRegistry(connection)
    notifier = DiscordLogNotifier(bot, log_channels)
    engine = GbanEngine(
        store=SqliteBanStore(connection),
        directory=directory,
        actuator=DiscordBanActuator(bot),
        notifier=notifier,
        settings=app_config.gban_settings,
        founders=app_config.founders,
    )
    prune_scheduler = GuildPruneScheduler(
        directory,
        notifier,
        get_inactive_days=lambda: app_config.inactive_guild_days,
        get_interval=lambda: app_config.inactive_check_interval,
    )

    events_listener.setup(bot, engine, directory, prune_scheduler)
    gban_cmds.setup(bot, engine, log_channels, directory)
    logger.info("All cogs loaded successfully.")

    if not engine.founders:
        logger.warning("No founders configured; every gban command will be refused.")

    return Runtime(bot=bot, connection=connection, engine=engine, prune_scheduler=prune_scheduler)


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection lifecycle."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(runtime: Runtime) -> None:
    """Stop the scheduler, the gban engine, the bot and the database, in that order."""
    try:
        await runtime.prune_scheduler.shutdown()
    except Exception as exc:
        logger.exception("Error during guild prune scheduler shutdown: %s", exc)

    try:
        await runtime.engine.shutdown()
    except Exception as exc:
        logger.exception("Error during gban engine shutdown: %s", exc)

    if not runtime.bot.is_closed():
        try:
            await runtime.bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    await runtime.connection.close()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database, the engine and the bot, returning an exit code."""
    token = load_environment()

    connection = ConnectionManager()
    try:
        logger.info("Initializing database at %s...", app_config.database_path)
        await connection.open(app_config.database_path)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        runtime = build_runtime(connection)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await connection.close()
        return 1

    exit_code = 0
    try:
        await start_bot(runtime.bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(runtime)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting gban bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    print(f"Exited with code: {main()}")
