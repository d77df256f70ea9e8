"""Fake database session for testing.

Repository fakes keep their rows in memory and register an undo callback on
the session for each write, so ``commit()`` and ``rollback()`` behave like a
real transaction without a database.
"""

from typing import Any, Callable, Optional

from genledger.db.unit_of_work import UnitOfWork


class FakeSession:
    """In-memory stand-in for AsyncSession.

    Usage::

        db = FakeSession()
        async with UnitOfWork(db) as uow:
            await fake_repo.increment_balance(db, account_id=..., amount=5, uow=uow)
        assert db.rollbacks == 1  # never committed, write undone
    """

    def __init__(self) -> None:
        """Initialize with an empty undo journal."""
        self._undo: list[Callable[[], None]] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def add_undo(self, undo: Callable[[], None]) -> None:
        """Register a callback that reverts one write."""
        self._undo.append(undo)

    @property
    def pending_writes(self) -> int:
        """Number of uncommitted writes."""
        return len(self._undo)

    async def commit(self) -> None:
        """Make pending writes permanent."""
        self._undo.clear()
        self.commits += 1

    async def rollback(self) -> None:
        """Revert pending writes, newest first."""
        while self._undo:
            self._undo.pop()()
        self.rollbacks += 1

    async def flush(self) -> None:
        """No-op flush."""
        return None

    async def close(self) -> None:
        """Mark the session closed."""
        self.closed = True


async def record_write(db: Any, undo: Callable[[], None], uow: Optional[UnitOfWork]) -> None:
    """Journal a fake write on *db*; autocommit when no unit of work owns it."""
    if not isinstance(db, FakeSession):
        return
    db.add_undo(undo)
    if uow is None:
        await db.commit()
