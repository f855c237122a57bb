"""
Locate the game process a debugger should attach to.

An explicit PID is only checked for liveness (with a short retry window,
since the client may send the request a moment before the game is spawned).
Without a PID the process table is scanned with three tiers of heuristics:

1. a freshly started engine process (name matches the engine pattern),
   those launched with ``--remote-debug`` first
2. a freshly started runtime host process (e.g. ``dotnet``)
3. the newest engine process of any age

The whole scan is retried with a fixed delay before giving up.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

import psutil

from core.exceptions import ProcessNotFoundError
from core.logging import logger_locator as logger
from core.settings import Settings, get_settings

# Flags the Godot editor is started with; the game child gets --editor-pid instead
EDITOR_FLAGS: frozenset[str] = frozenset({"--editor", "-e"})
# Present on game instances the editor started with its debugger listening
REMOTE_DEBUG_FLAG = "--remote-debug"


@dataclass
class ProcessCandidate:
    """One row of a process table snapshot. ``start_time`` is epoch seconds or None if unreadable."""

    pid: int
    name: str
    start_time: float | None = None
    is_self: bool = False
    cmdline: tuple[str, ...] = field(default_factory=tuple)

    @property
    def normalized_name(self) -> str:
        name = self.name.lower()
        return name[:-4] if name.endswith(".exe") else name

    def age(self, now: float) -> float | None:
        if self.start_time is None:
            return None
        return now - self.start_time

    def is_editor(self) -> bool:
        return any(arg in EDITOR_FLAGS for arg in self.cmdline[1:])

    def has_remote_debug(self) -> bool:
        return any(arg == REMOTE_DEBUG_FLAG or arg.startswith(REMOTE_DEBUG_FLAG + "=") for arg in self.cmdline[1:])


def snapshot_processes() -> list[ProcessCandidate]:
    """Read the process table. Attributes that cannot be read come back as None."""
    own_pid = os.getpid()
    candidates: list[ProcessCandidate] = []
    for proc in psutil.process_iter(["pid", "name", "create_time", "cmdline"]):
        info = proc.info
        candidates.append(
            ProcessCandidate(
                pid=info["pid"],
                name=info.get("name") or "",
                start_time=info.get("create_time"),
                is_self=info["pid"] == own_pid,
                cmdline=tuple(info.get("cmdline") or ()),
            )
        )
    return candidates


def pid_is_running(pid: int) -> bool:
    try:
        if not psutil.pid_exists(pid):
            return False
    except (OverflowError, ValueError):
        # Larger than the platform pid type, so no such process can exist
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # Exists but belongs to another user
        return True


def _newest(candidates: Iterable[ProcessCandidate]) -> ProcessCandidate | None:
    # Unknown start times sort last
    ordered = sorted(
        candidates,
        key=lambda c: (c.start_time is not None, c.start_time or 0.0),
        reverse=True,
    )
    return ordered[0] if ordered else None


class ProcessLocator:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        process_source: Callable[[], list[ProcessCandidate]] = snapshot_processes,
        pid_alive: Callable[[int], bool] = pid_is_running,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        self_pid: int | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._process_source = process_source
        self._pid_alive = pid_alive
        self._clock = clock
        self._sleep = sleep
        self._self_pid = os.getpid() if self_pid is None else self_pid

        self.engine_pattern = self.settings.LOCATOR_ENGINE_PATTERN.lower()
        self.host_names = set(self.settings.runtime_host_names)
        self.retry_delay_s = self.settings.LOCATOR_RETRY_DELAY_MS / 1000.0

    def is_engine_process(self, candidate: ProcessCandidate) -> bool:
        return bool(self.engine_pattern) and self.engine_pattern in candidate.name.lower()

    def is_runtime_host(self, candidate: ProcessCandidate) -> bool:
        return candidate.normalized_name in self.host_names

    def _is_self(self, candidate: ProcessCandidate) -> bool:
        return candidate.is_self or candidate.pid == self._self_pid

    def select_candidate(self, candidates: list[ProcessCandidate], now: float) -> ProcessCandidate | None:
        """Apply the three selection tiers to one snapshot."""
        s = self.settings

        def recent(c: ProcessCandidate, window: float) -> bool:
            age = c.age(now)
            return age is not None and age < window

        engine = [c for c in candidates if self.is_engine_process(c) and not self._is_self(c)]
        if s.LOCATOR_EXCLUDE_EDITOR:
            engine = [c for c in engine if not c.is_editor()]
        logger.debug(f"Found {len(engine)} engine processes matching '{self.engine_pattern}'")

        recent_engine = [c for c in engine if recent(c, s.LOCATOR_ENGINE_WINDOW_S)]
        chosen = _newest(c for c in recent_engine if c.has_remote_debug())
        if chosen is not None:
            logger.info(f"Found recent engine process with {REMOTE_DEBUG_FLAG}: PID {chosen.pid} ({chosen.name})")
            return chosen
        chosen = _newest(recent_engine)
        if chosen is not None:
            logger.info(f"Found recent engine process: PID {chosen.pid} ({chosen.name})")
            return chosen

        hosts = [c for c in candidates if self.is_runtime_host(c) and not self._is_self(c)]
        for c in hosts:
            age = c.age(now)
            logger.debug(f"Checking runtime host PID {c.pid}, age: {'unknown' if age is None else f'{age:.1f}s'}")
        chosen = _newest(c for c in hosts if recent(c, s.LOCATOR_HOST_WINDOW_S))
        if chosen is not None:
            logger.info(f"Found recent runtime host process (likely game): PID {chosen.pid} ({chosen.name})")
            return chosen

        chosen = _newest(engine)
        if chosen is not None:
            logger.info(f"Using most recent engine process: PID {chosen.pid} ({chosen.name})")
            return chosen

        return None

    def scan(self) -> int | None:
        """One pass over the process table. Enumeration failures count as 'nothing found'."""
        logger.debug(f"Scanning for game process (excluding self PID: {self._self_pid})")
        try:
            candidates = self._process_source()
        except (psutil.Error, OSError) as e:
            logger.warning(f"Error scanning processes: {e}")
            return None

        chosen = self.select_candidate(candidates, self._clock())
        return chosen.pid if chosen is not None else None

    async def locate(self, explicit_pid: int | None = None) -> int:
        """
        Resolve the PID to attach to.

        Raises:
            ProcessNotFoundError: when no process is found within the retry budget
        """
        if explicit_pid is not None and explicit_pid > 0:
            return await self._wait_for_pid(explicit_pid)
        return await self._auto_detect()

    async def _wait_for_pid(self, pid: int) -> int:
        retries = self.settings.LOCATOR_PID_RETRIES

        if await asyncio.to_thread(self._pid_alive, pid):
            return pid

        for attempt in range(1, retries + 1):
            logger.info(f"PID {pid} not found, retrying... ({attempt}/{retries})")
            await self._sleep(self.retry_delay_s)
            if await asyncio.to_thread(self._pid_alive, pid):
                logger.info(f"PID {pid} appeared after {attempt} retries")
                return pid

        raise ProcessNotFoundError(
            f"Process with PID {pid} not found after {retries} retries",
            context={"pid": pid, "retries": retries},
        )

    async def _auto_detect(self) -> int:
        retries = self.settings.LOCATOR_AUTO_RETRIES
        logger.info("PID is 0, auto-detecting game process...")

        for attempt in range(1, retries + 1):
            pid = await asyncio.to_thread(self.scan)
            if pid is not None:
                logger.info(f"Auto-detected game PID: {pid}")
                return pid

            logger.info(f"Game process not found, retrying... ({attempt}/{retries})")
            if attempt < retries:
                await self._sleep(self.retry_delay_s)

        raise ProcessNotFoundError(
            f"Failed to auto-detect game process after {retries} retries",
            context={"engine_pattern": self.engine_pattern, "retries": retries},
        )
