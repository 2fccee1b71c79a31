"""Error handling policy applied between whole-document conversions."""

from __future__ import annotations

from typing import Dict, List, Optional

from .errors import (
    AbortRequested,
    ErrorCategory,
    ErrorRecord,
    ErrorTracker,
    NonInteractiveAbort,
)

ANSWERS: Dict[str, str] = {
    "c": "continue",
    "continue": "continue",
    "r": "retry",
    "retry": "retry",
    "a": "abort",
    "abort": "abort",
}


class ErrorPolicy:
    """Records per-document failures and decides whether the run may go on.

    Below the tracker thresholds every failure simply skips its document.
    Once a threshold is crossed an interactive run asks the user, and a
    non-interactive run stops.
    """

    def __init__(self, *, interactive: bool) -> None:
        self.interactive = interactive
        self.records: List[ErrorRecord] = []
        self.tracker = ErrorTracker()

    def record_success(self) -> None:
        self.tracker.reset_consecutive()

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        details: Optional[str] = None,
    ) -> str:
        """Record a failed document and return ``"continue"`` or ``"retry"``."""

        self.records.append(ErrorRecord(category=category, message=message, details=details))
        consecutive, total, threshold = self.tracker.register(category)
        print(message)
        if not threshold:
            return "continue"

        if not self.interactive:
            raise NonInteractiveAbort(
                f"Stopping after {total} failed document(s) in non-interactive mode."
            )

        if consecutive >= self.tracker.CONSECUTIVE_LIMIT:
            question = (
                f"{consecutive} {category.name.lower()} failures in a row. "
                "Continue, retry, or abort?"
            )
        else:
            question = f"{total} documents failed so far. Continue, retry, or abort?"
        decision = self._ask(question)
        if decision == "abort":
            raise AbortRequested("Abort requested by user.")
        return decision

    @staticmethod
    def _ask(question: str) -> str:
        while True:
            decision = ANSWERS.get(input(f"{question} ").strip().lower())
            if decision is not None:
                return decision
            print("Please respond with Continue, Retry, or Abort (c/r/a).")
