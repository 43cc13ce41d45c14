"""Question/answer correlation.

Questions get a bridge-assigned id when they are received.  The id stays
pending until an answer with the same ``questionId`` arrives or the entry
outlives the TTL.  Any agent may answer any pending question.

Ids are ``q-<n>`` with one counter per process, so they never collide even
when several bridges run side by side.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from vibecode.bridge.errors import UnknownQuestionError
from vibecode.bridge.models.enums import Role

# Shared by every correlator so ids stay unique across bridges in one process.
_question_ids = itertools.count(1)


@dataclass
class PendingQuestion:
    question_id: str
    question: str
    asked_by: str
    asked_at: float
    asked_role: Role | None = None
    context: Any = None


@dataclass
class AnsweredQuestion:
    pending: PendingQuestion
    answer: str
    answered_at: float

    @property
    def question_id(self) -> str:
        return self.pending.question_id

    @property
    def question(self) -> str:
        return self.pending.question


class QuestionCorrelator:
    """Assigns question ids and matches answers back to them.

    *ttl* is in seconds on the *clock* timeline; ``0`` or less disables expiry.
    """

    def __init__(self, ttl: float = 600.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._pending: dict[str, PendingQuestion] = {}

    def open(
        self,
        question: str,
        context: Any,
        asked_by: str,
        asked_role: Role | None = None,
    ) -> str:
        """Store a pending question and return its new id."""
        question_id = f"q-{next(_question_ids)}"
        self._pending[question_id] = PendingQuestion(
            question_id=question_id,
            question=question,
            asked_by=asked_by,
            asked_at=self._clock(),
            asked_role=asked_role,
            context=context,
        )
        return question_id

    def resolve(self, question_id: str, answer: str) -> AnsweredQuestion:
        """Close a pending question.  Raises ``UnknownQuestionError`` if it is not pending."""
        now = self._clock()
        self.expire(now)
        pending = self._pending.pop(question_id, None)
        if pending is None:
            raise UnknownQuestionError(question_id)
        return AnsweredQuestion(pending=pending, answer=answer, answered_at=now)

    def expire(self, now: float | None = None) -> list[str]:
        """Drop questions older than the TTL; return the expired ids."""
        if self.ttl <= 0:
            return []
        if now is None:
            now = self._clock()
        cutoff = now - self.ttl
        expired = [qid for qid, p in self._pending.items() if p.asked_at <= cutoff]
        for qid in expired:
            del self._pending[qid]
        if expired:
            logger.debug("Correlator: expired {} question(s): {}", len(expired), expired)
        return expired

    # -- Query -----------------------------------------------------------------

    def get(self, question_id: str) -> PendingQuestion | None:
        return self._pending.get(question_id)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._pending
