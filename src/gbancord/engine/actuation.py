"""
Per-target actuation loop shared by every gban task.

The loop is strictly sequential: Discord's rate limit is global to the bot,
not per guild, so fanning out would break it. Each target is attempted
exactly once; failures are counted and logged and never stop the loop.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from gbancord.datatypes.discord_datatypes import GuildID
from gbancord.engine.progress import calculate_update_interval, should_emit_progress
from gbancord.util.logger import get_logger

logger = get_logger("actuation")

Actuate = Callable[[GuildID], Awaitable[bool]]
ProgressCallback = Callable[[int, int], Awaitable[None]]


@dataclass
class ActuationOutcome:
    """Counts produced by one pass over a target snapshot."""
    total: int
    processed: int = 0
    succeeded: int = 0
    failed_targets: List[GuildID] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_targets)


async def actuate_targets(
    targets: Sequence[GuildID],
    actuate: Actuate,
    *,
    delay: float,
    min_update_interval: float,
    call_timeout: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
    clock: Callable[[], float] = time.monotonic,
) -> ActuationOutcome:
    """
    Invoke ``actuate`` once per target, in snapshot order.

    Args:
        targets: The snapshot taken at task start; never re-read here.
        actuate: Coroutine returning True on success. Exceptions and timeouts
            count as failures.
        delay: Seconds to sleep after every invocation.
        min_update_interval: Minimum seconds between two progress callbacks.
        call_timeout: Upper bound for one ``actuate`` call, None for no bound.
        on_progress: Awaited with ``(processed, total)`` when an update is due.
        clock: Monotonic time source used by the time throttle.

    Returns:
        ActuationOutcome: processed/succeeded counts and the failed targets.
    """
    total = len(targets)
    outcome = ActuationOutcome(total=total)
    interval = calculate_update_interval(total)
    last_update = clock()

    for target in targets:
        try:
            if call_timeout is not None:
                ok = await asyncio.wait_for(actuate(target), timeout=call_timeout)
            else:
                ok = await actuate(target)
        except asyncio.TimeoutError:
            logger.warning("[ACTUATION] Call timed out in guild %s", target)
            ok = False
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("[ACTUATION] Call failed in guild %s: %s", target, exc)
            ok = False

        if ok:
            outcome.succeeded += 1
        else:
            outcome.failed_targets.append(target)

        await asyncio.sleep(delay)

        outcome.processed += 1
        now = clock()
        if on_progress is not None and should_emit_progress(
            outcome.processed, total, interval, now, last_update, min_update_interval
        ):
            try:
                await on_progress(outcome.processed, total)
            except Exception as exc:
                logger.warning("[ACTUATION] Progress update failed: %s", exc)
            else:
                last_update = now

    return outcome
