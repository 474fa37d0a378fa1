from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from flockbook.domain.errors import AppError, user_message

log = logging.getLogger(__name__)

SUCCESS_FLAG_SECONDS = 3


class Submission:
    """Form submission state: idle -> submitting -> idle.

    On failure the form data is kept and ``error`` holds one user-facing
    message. On success the form resets and ``show_success`` stays true for a
    few seconds.
    """

    def __init__(self, initial: dict, clock: Callable[[], float] = time.time):
        self.initial = dict(initial)
        self.form = dict(initial)
        self.clock = clock
        self.state = "idle"
        self.error: Optional[str] = None
        self._succeeded_at: Optional[float] = None

    @property
    def is_submitting(self) -> bool:
        return self.state == "submitting"

    @property
    def show_success(self) -> bool:
        if self._succeeded_at is None:
            return False
        return self.clock() - self._succeeded_at < SUCCESS_FLAG_SECONDS

    def set(self, **values: Any) -> None:
        self.form.update(values)

    def submit(self, action: Callable[[dict], Any]) -> bool:
        if self.is_submitting:
            return False
        self.state = "submitting"
        self.error = None
        try:
            action(dict(self.form))
        except AppError as e:
            self.error = user_message(e)
            log.info("submission_failed error=%s", e)
            return False
        finally:
            self.state = "idle"

        self.form = dict(self.initial)
        self._succeeded_at = self.clock()
        return True
