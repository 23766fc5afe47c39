"""Completion poller: waits for a SpeechLab project to finish.

WHY: SpeechLab dubbing takes minutes. The orchestrator needs a single
awaitable that turns the remote asynchronous job into a result, without
letting a transient lookup failure abort the whole wait and without
waiting forever.

HOW: A small state machine driven by an injectable clock and sleep
function. Each tick fetches the project by third-party ID and evaluates
the snapshot; non-terminal snapshots schedule another tick after a fixed
interval until the wall-clock deadline passes.

RULES:
- States: PENDING → IN_PROGRESS → COMPLETE | FAILED | TIMED_OUT
- COMPLETE and FAILED return immediately; no poll after a terminal status
- A miss (None) or a lookup error keeps the poller IN_PROGRESS
- Every fetched snapshot is evaluated before the deadline check, so a
  completion seen at or after the deadline still wins
- Timeout is returned as an outcome, not raised
- Progress percentages are diagnostics only, never control flow
- Defaults: 60 minute maximum wait, 30 second interval
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from speechlab_dubber.api.models import UNKNOWN_STATUS, JobStatus, Project
from speechlab_dubber.errors import AuthorizationRetryExhausted, ProjectLookupError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_S = 60 * 60.0
DEFAULT_CHECK_INTERVAL_S = 30.0

_IN_PROGRESS_PERCENT = 50


class PollState(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class PollOutcome:
    """Terminal result of CompletionPoller.wait().

    project is the last snapshot seen (None if nothing was ever found).
    """

    state: PollState
    project: Project | None
    poll_count: int
    elapsed_s: float


def estimate_progress(status: str | None) -> int:
    """Crude progress guess: 50% for any known non-terminal status, else 0."""
    if not status or status == UNKNOWN_STATUS:
        return 0
    if JobStatus.from_raw(status).is_terminal:
        return 0
    return _IN_PROGRESS_PERCENT


def estimate_remaining_s(elapsed_s: float, percent: int) -> float | None:
    if percent <= 0:
        return None
    total = elapsed_s / percent * 100
    return max(total - elapsed_s, 0.0)


class CompletionPoller:
    """Polls a project lookup until a terminal status or the deadline.

    WHY: Separating the wait loop from the HTTP client keeps it testable
    with a fake clock, and lets the orchestrator decide how to report
    each outcome.

    HOW: wait() loops: fetch → classify → return or sleep. The clock
    and sleep callables default to time.monotonic and asyncio.sleep.

    RULES:
    - fetch must return a Project or None, and may raise ProjectLookupError
      or AuthorizationRetryExhausted (both tolerated)
    - on_status, if given, receives a human-readable line per tick
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[Project | None]],
        max_wait_s: float = DEFAULT_MAX_WAIT_S,
        check_interval_s: float = DEFAULT_CHECK_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_status: Callable[[str], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._max_wait_s = max_wait_s
        self._check_interval_s = check_interval_s
        self._clock = clock
        self._sleep = sleep
        self._on_status = on_status
        self.state = PollState.PENDING

    def _status(self, msg: str) -> None:
        logger.info(msg)
        if self._on_status:
            self._on_status(msg)

    async def _poll_once(self, third_party_id: str, poll_count: int) -> Project | None:
        try:
            return await self._fetch(third_party_id)
        except (ProjectLookupError, AuthorizationRetryExhausted) as exc:
            logger.warning("Poll #%d - lookup failed, will retry: %s", poll_count, exc)
            return None

    async def wait(self, third_party_id: str) -> PollOutcome:
        """Poll until the project completes, fails, or time runs out.

        Args:
            third_party_id: Correlation id the project was created with.

        Returns:
            PollOutcome in state COMPLETE, FAILED, or TIMED_OUT.
        """
        self.state = PollState.PENDING
        start = self._clock()
        poll_count = 0
        last: Project | None = None

        self._status(
            f"Waiting for project {third_party_id} "
            f"(max {self._max_wait_s / 60:.1f} min, every {self._check_interval_s:.0f}s)"
        )

        while True:
            poll_count += 1
            self.state = PollState.IN_PROGRESS
            logger.debug(
                "Poll #%d - checking project status (%.1fs elapsed)",
                poll_count,
                self._clock() - start,
            )

            project = await self._poll_once(third_party_id, poll_count)
            last = project
            elapsed = self._clock() - start

            if project is None:
                logger.warning(
                    "Poll #%d - could not retrieve project details, will retry in %.0fs",
                    poll_count,
                    self._check_interval_s,
                )
            elif project.kind is JobStatus.COMPLETE:
                self.state = PollState.COMPLETE
                self._status(
                    f"Poll #{poll_count} - project completed after {elapsed / 60:.1f} minutes"
                )
                return PollOutcome(self.state, project, poll_count, elapsed)
            elif project.kind is JobStatus.FAILED:
                self.state = PollState.FAILED
                self._status(f"Poll #{poll_count} - project failed to process")
                return PollOutcome(self.state, project, poll_count, elapsed)
            else:
                percent = estimate_progress(project.status)
                remaining = estimate_remaining_s(elapsed, percent)
                remaining_text = (
                    f"~{math.ceil(remaining / 60)} minutes" if remaining is not None else "unknown"
                )
                self._status(
                    f"Poll #{poll_count} - status {project.status}, progress {percent}%, "
                    f"estimated time remaining: {remaining_text}"
                )

            if elapsed >= self._max_wait_s:
                break
            await self._sleep(self._check_interval_s)

        self.state = PollState.TIMED_OUT
        self._status(
            f"Poll #{poll_count} - maximum wait time of {self._max_wait_s / 60:.1f} "
            f"minutes exceeded without project completion"
        )
        return PollOutcome(self.state, last, poll_count, self._clock() - start)
