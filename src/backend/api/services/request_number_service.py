"""
Daily request-number sequence.

Numbers look like REQ<YY><MM><DD>-<NNN>. The counter for each day lives in
request_sequences and is advanced with a single
INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement, so concurrent
callers always receive distinct values.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from db import RequestSequence, utc_now

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def day_key(moment: datetime) -> str:
    return moment.strftime("%y%m%d")


def format_request_number(moment: datetime, sequence: int) -> str:
    """Format a request number, e.g. REQ250314-007."""
    return f"REQ{day_key(moment)}-{sequence:03d}"


class RequestNumberService:
    """Allocates request numbers from the per-day counter."""

    @staticmethod
    async def next_sequence(db: AsyncSession, moment: Optional[datetime] = None) -> int:
        """Atomically increment and return the counter for the day of ``moment``."""
        moment = moment or utc_now()
        dialect = db.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Request numbering is not supported on dialect '{dialect}'")

        stmt = (
            insert(RequestSequence)
            .values(day_key=day_key(moment), last_value=1)
            .on_conflict_do_update(
                index_elements=[RequestSequence.day_key],
                set_={"last_value": RequestSequence.last_value + 1},
            )
            .returning(RequestSequence.last_value)
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def next_request_number(db: AsyncSession, moment: Optional[datetime] = None) -> str:
        moment = moment or utc_now()
        sequence = await RequestNumberService.next_sequence(db, moment)
        number = format_request_number(moment, sequence)
        logger.debug(f"Allocated request number {number}")
        return number
