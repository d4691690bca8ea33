"""
Downstream results invalidation.

Any computed output of a case depends on its exception geometry. Before a
geometry mutation commits, the store calls invalidate() with the same
session, so the purge commits or rolls back together with the mutation.
"""

import logging
from typing import Protocol

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from exception_areas.models.orm import CaseOutput, CaseResult

logger = logging.getLogger(__name__)


class ResultsInvalidator(Protocol):
    """Purges computed outputs of a case inside the caller's transaction."""

    def invalidate(self, session: Session, case_id: int, hard: bool = False) -> None:
        ...


class DatabaseResultsInvalidator:
    """
    Invalidate case outputs stored in the same database.

    Soft: delete every computed result of the case and mark its outputs out
    of sync, so they are recomputed on next use.
    Hard: also delete the output definitions themselves.
    """

    def invalidate(self, session: Session, case_id: int, hard: bool = False) -> None:
        removed = session.execute(
            delete(CaseResult).where(CaseResult.case_id == case_id)
        ).rowcount

        if hard:
            session.execute(delete(CaseOutput).where(CaseOutput.case_id == case_id))
        else:
            session.execute(
                update(CaseOutput)
                .where(CaseOutput.case_id == case_id)
                .values(in_sync=False)
            )

        logger.info(
            f"Invalidated outputs of case {case_id} "
            f"({'hard' if hard else 'soft'}, {removed} results removed)"
        )
