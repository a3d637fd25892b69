import logging
import time

logger = logging.getLogger("turn")


class CycleGuard:
    """
    Generation counter for listening windows.
    Callbacks capture `current` when armed and compare before acting.
    """

    def __init__(self):
        self.current = 0

    def advance(self, reason: str) -> int:
        self.current += 1
        logger.debug("[CYCLE %s] advanced | reason=%s", self.current, reason)
        return self.current

    def is_current(self, cycle: int) -> bool:
        return cycle == self.current


class SubmissionGuard:
    """
    Held strictly between "submission initiated" and "submission settled".
    Acquire/release are synchronous; no await may sit between the check and the set.
    """

    def __init__(self):
        self.held = False
        self.acquired_at = None
        self.submissions = 0

    def try_acquire(self, reason: str) -> bool:
        if self.held:
            logger.info("[SUBMIT] skipped (already in flight) | reason=%s", reason)
            return False

        self.held = True
        self.acquired_at = time.monotonic()
        self.submissions += 1
        logger.info("[SUBMIT #%s] guard acquired | reason=%s", self.submissions, reason)
        return True

    def release(self):
        if not self.held:
            return
        latency = time.monotonic() - (self.acquired_at or time.monotonic())
        self.held = False
        self.acquired_at = None
        logger.info("[SUBMIT #%s] guard released | latency=%.2fs", self.submissions, latency)
