"""
Pending update service: deferred mutations of another user's lists.

When an operation by user A must change user B's relationship list
(A follows B, so B gains a follower), the change is recorded as a
``PendingUpdate`` row instead of writing B's record directly.  The rows
are drained into B's record by :func:`reconcile`, which the token check
and the public profile fetch call before returning B to anyone.

Design notes
------------
- Rows are applied newest first (``create_time`` desc, id desc on ties).
- Each row is applied to the *current* state of the list, so successive
  rows compose.
- Every application is committed together with the deletion of its row,
  in a session of its own; nothing is batched.  Rows already applied stay
  applied even if the request that triggered reconciliation later fails.
  A failure stops the loop and surfaces as ``StorageError``; rows not yet
  deleted are retried on the next call.
- ``enqueue`` only flushes; its commit is owned by the request's
  ``get_db`` dependency.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi import string_set
from blogapi.exceptions import StorageError, ValidationError
from blogapi.models import PendingUpdate, User

logger = logging.getLogger(__name__)

# The only list currently fed through the queue.
RECONCILED_FIELD = "following_list"


def _pending_to_dict(pending: PendingUpdate) -> dict:
    return {
        "id": pending.id,
        "user_id": pending.user_id,
        "value": pending.value,
        "creator_id": pending.creator_id,
        "is_delete": pending.is_delete,
        "create_time": pending.create_time.isoformat() if pending.create_time else None,
    }


async def enqueue(
    db: AsyncSession,
    user_id: str,
    value: str,
    creator_id: str,
    is_delete: bool = False,
) -> dict:
    """Record a pending mutation of *user_id*'s list and return it serialised."""
    if not user_id or not value or not creator_id:
        raise ValidationError("user_id, value and creator_id are required")

    pending = PendingUpdate(
        user_id=user_id,
        value=value,
        creator_id=creator_id,
        is_delete=is_delete,
    )
    db.add(pending)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.exception("Failed to enqueue pending update for user %s", user_id)
        raise StorageError() from exc

    logger.debug(
        "Queued %s of %r on user %s by %s",
        "removal" if is_delete else "addition",
        value,
        user_id,
        creator_id,
    )
    return _pending_to_dict(pending)


async def reconcile(db: AsyncSession, user_id: str) -> User | None:
    """
    Drain every pending update for *user_id* into the user's record.

    Rows are applied in a separate session on the same engine, committing
    the user and the row deletion together after each application.  The
    request session in *db* then reloads the user, so a later rollback of
    the request cannot undo applied rows.

    Returns the updated ``User`` (attached to *db*) or None when there was
    nothing to apply (the caller keeps the record it already holds).
    """
    q = (
        select(PendingUpdate)
        .where(PendingUpdate.user_id == user_id)
        .order_by(PendingUpdate.create_time.desc(), PendingUpdate.id.desc())
    )
    applied = 0
    async with AsyncSession(db.bind, expire_on_commit=False) as work:
        try:
            pending_rows = (await work.execute(q)).scalars().all()
            if not pending_rows:
                return None

            user = await work.get(User, user_id)
            if user is None:
                logger.warning(
                    "Skipping %d pending update(s) for missing user %s",
                    len(pending_rows),
                    user_id,
                )
                return None

            for pending in pending_rows:
                string_set.update_field(user, RECONCILED_FIELD, pending.value, pending.is_delete)
                await work.delete(pending)
                await work.commit()
                applied += 1
                logger.debug("Applied pending update %s to user %s", pending.id, user_id)
        except SQLAlchemyError as exc:
            await work.rollback()
            logger.exception(
                "Reconciliation aborted for user %s after %d applied update(s)", user_id, applied
            )
            raise StorageError() from exc

    logger.info("Reconciled %d pending update(s) for user %s", applied, user_id)
    reconciled = await db.get(User, user_id)
    if reconciled is not None:
        await db.refresh(reconciled)
    return reconciled
