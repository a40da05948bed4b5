"""
Ledger: the engine's only persistence boundary.

Wraps a SQLModel session with the handful of primitives the engine needs:
get, query, set, update, increment and an atomic batch. Components receive a
Ledger at construction; nothing in the engine reaches for a global session.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional, Type, TypeVar

from sqlalchemy import update as sa_update
from sqlmodel import Session, SQLModel, select

from boxleague.errors import NotFound

ModelT = TypeVar("ModelT", bound=SQLModel)


class Ledger:
    def __init__(self, session: Session):
        self.session = session
        self._depth = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, model: Type[ModelT], entity_id: Any) -> Optional[ModelT]:
        return self.session.get(model, entity_id)

    def get_or_raise(self, model: Type[ModelT], entity_id: Any, error: Type[NotFound]) -> ModelT:
        obj = self.session.get(model, entity_id)
        if obj is None:
            raise error(entity_id)
        return obj

    def query(self, model: Type[ModelT], *filters: Any, order_by: Any = None, for_update: bool = False) -> List[ModelT]:
        stmt = select(model)
        for condition in filters:
            stmt = stmt.where(condition)
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                stmt = stmt.order_by(*order_by)
            else:
                stmt = stmt.order_by(order_by)
        if for_update:
            # A locked read must see the committed row, not the identity map copy
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return list(self.session.exec(stmt).all())

    def first(self, model: Type[ModelT], *filters: Any, for_update: bool = False) -> Optional[ModelT]:
        rows = self.query(model, *filters, for_update=for_update)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Writes (only inside batch())
    # ------------------------------------------------------------------

    def set(self, obj: ModelT) -> ModelT:
        """Insert or replace by primary key."""
        merged = self.session.merge(obj)
        return merged

    def add(self, obj: ModelT) -> ModelT:
        self.session.add(obj)
        return obj

    def update(self, obj: ModelT, **fields: Any) -> ModelT:
        for name, value in fields.items():
            setattr(obj, name, value)
        if hasattr(obj, "updated_at"):
            obj.updated_at = datetime.utcnow()
        self.session.add(obj)
        return obj

    def increment(self, model: Type[SQLModel], entity_id: Any, field: str, by: int = 1) -> None:
        """Server-side increment so concurrent writers serialize in the database."""
        self.increment_many(model, entity_id, **{field: by})

    def increment_many(self, model: Type[SQLModel], entity_id: Any, **deltas: int) -> None:
        """Apply several counter deltas to one row in a single UPDATE."""
        if not deltas:
            return
        values = {name: getattr(model, name) + by for name, by in deltas.items()}
        stmt = sa_update(model).where(model.id == entity_id).values(values)
        self.session.exec(stmt)

    def flush(self) -> None:
        self.session.flush()

    def refresh(self, obj: SQLModel) -> None:
        self.session.refresh(obj)

    @contextmanager
    def batch(self) -> Iterator["Ledger"]:
        """
        Atomic multi-write. Everything written inside the outermost batch commits
        together or rolls back together; nested batches join the outer one.
        """
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self.session.commit()
        except Exception:
            if self._depth == 1:
                self.session.rollback()
            raise
        finally:
            self._depth -= 1
