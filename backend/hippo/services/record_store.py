"""Generic record persistence over a SQLAlchemy session.

The registries never build queries themselves. They describe what they want
with plain filter dicts and let the store translate them:

    store = RecordStore(db, Loan)
    store.find(
        {"borrower_id": user_id, "status": In(LISTED_STATUSES)},
        order_by=("start_date", "desc")
    )

Filter values are matched by equality unless wrapped in `In` (value in set)
or `Ne` (not equal). `any_of` takes a list of equality groups that are OR-ed
together and AND-ed with the main filter.

Every SQLAlchemy failure is rolled back and re-raised as a domain error:
unique violations as `ConflictError`, everything else as
`TransientStoreError`. Missing records are never an exception at this
layer, except through `get()`.
"""
from contextlib import contextmanager
from typing import Any, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar
import uuid

from sqlalchemy import and_, or_, select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hippo.exceptions import ConflictError, NotFoundError, TransientStoreError
from hippo.middleware.logging import get_logger

logger = get_logger()

ModelT = TypeVar("ModelT")

Filters = Dict[str, Any]
OrderBy = Tuple[str, str]

_TX_DEPTH = "hippo.tx_depth"


class In:
    """Match when the field equals any of `values`."""

    def __init__(self, values: Sequence[Any]):
        self.values = list(values)

    def __repr__(self):
        return f"In({self.values!r})"


class Ne:
    """Match when the field differs from `value`."""

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self):
        return f"Ne({self.value!r})"


class RecordStore(Generic[ModelT]):
    """Typed document store for one model class."""

    def __init__(self, db: Session, model: Type[ModelT]):
        self.db = db
        self.model = model

    @property
    def name(self) -> str:
        return self.model.__name__

    # Open atomic() blocks are counted on the session, so every store
    # sharing the session joins the same transaction.
    @property
    def _depth(self) -> int:
        return self.db.info.get(_TX_DEPTH, 0)

    @_depth.setter
    def _depth(self, value: int) -> None:
        self.db.info[_TX_DEPTH] = value

    # ------------------------------------------------------------------
    # Transactions and error translation
    # ------------------------------------------------------------------

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("store_conflict", model=self.name, operation=operation, error=str(e.orig))
            raise ConflictError(f"{self.name} {operation} violates a uniqueness constraint") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "store_unavailable",
                model=self.name,
                operation=operation,
                error=str(e),
                error_type=type(e).__name__
            )
            raise TransientStoreError(f"{self.name} store unavailable during {operation}") from e

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Group several writes into one transaction.

        Writes issued inside the block are flushed but not committed; the
        block commits once on exit or rolls everything back on error.
        Nested blocks join the outermost transaction.
        """
        self._depth += 1
        try:
            with self._guard("transaction"):
                yield
                if self._depth == 1:
                    self.db.commit()
        except BaseException:
            if self._depth == 1:
                self.db.rollback()
            raise
        finally:
            self._depth -= 1

    def _finish(self, commit: bool) -> None:
        if commit and self._depth == 0:
            self.db.commit()
        else:
            self.db.flush()

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def _column(self, field: str):
        try:
            return getattr(self.model, field)
        except AttributeError:
            raise ValueError(f"{self.name} has no field {field!r}") from None

    def _condition(self, field: str, value: Any):
        column = self._column(field)
        if isinstance(value, In):
            return column.in_(value.values)
        if isinstance(value, Ne):
            return column != value.value
        if value is None:
            return column.is_(None)
        return column == value

    def _where(self, filters: Optional[Filters], any_of: Optional[List[Filters]] = None):
        clauses = [self._condition(f, v) for f, v in (filters or {}).items()]
        if any_of:
            clauses.append(or_(*[
                and_(*[self._condition(f, v) for f, v in group.items()])
                for group in any_of
            ]))
        return clauses

    def _order(self, order_by: Optional[OrderBy]):
        if order_by is None:
            return []
        field, direction = order_by
        column = self._column(field)
        if direction == "desc":
            return [column.desc()]
        if direction == "asc":
            return [column.asc()]
        raise ValueError(f"Unknown sort direction {direction!r}")

    @staticmethod
    def parse_id(record_id: Any) -> Optional[uuid.UUID]:
        if isinstance(record_id, uuid.UUID):
            return record_id
        try:
            return uuid.UUID(str(record_id))
        except (ValueError, AttributeError):
            return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def insert(self, record: ModelT, commit: bool = True) -> ModelT:
        """Persist a new record; the primary key is assigned on flush."""
        with self._guard("insert"):
            self.db.add(record)
            self._finish(commit)
            if commit and self._depth == 0:
                self.db.refresh(record)
        return record

    def find_by_id(self, record_id: Any, for_update: bool = False) -> Optional[ModelT]:
        """
        Return the record with `record_id`, or None (malformed ids included).

        With `for_update` the row is re-read and locked until the surrounding
        transaction ends, so read-modify-write sequences on it serialize.
        """
        key = self.parse_id(record_id)
        if key is None:
            return None
        with self._guard("find_by_id"):
            if for_update:
                return self.db.get(self.model, key, with_for_update=True, populate_existing=True)
            return self.db.get(self.model, key)

    def get(self, record_id: Any, for_update: bool = False) -> ModelT:
        """Like `find_by_id` but raises NotFoundError."""
        record = self.find_by_id(record_id, for_update=for_update)
        if record is None:
            raise NotFoundError(self.name, record_id)
        return record

    def find(
        self,
        filters: Optional[Filters] = None,
        any_of: Optional[List[Filters]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None
    ) -> List[ModelT]:
        """Return every matching record, materialized."""
        stmt = select(self.model).where(*self._where(filters, any_of)).order_by(*self._order(order_by))
        if limit:
            stmt = stmt.limit(limit)
        with self._guard("find"):
            return list(self.db.scalars(stmt).all())

    def find_one(
        self,
        filters: Optional[Filters] = None,
        any_of: Optional[List[Filters]] = None,
        order_by: Optional[OrderBy] = None
    ) -> Optional[ModelT]:
        """Return the first matching record or None."""
        found = self.find(filters, any_of, order_by, limit=1)
        return found[0] if found else None

    def count(self, filters: Optional[Filters] = None) -> int:
        stmt = select(func.count()).select_from(self.model).where(*self._where(filters))
        with self._guard("count"):
            return self.db.scalar(stmt) or 0

    def max(self, field: str, filters: Optional[Filters] = None) -> Any:
        """Largest value of `field` among matching records (None when empty)."""
        stmt = select(func.max(self._column(field))).where(*self._where(filters))
        with self._guard("max"):
            return self.db.scalar(stmt)

    def update_by_id(self, record_id: Any, patch: Dict[str, Any], commit: bool = True) -> Optional[ModelT]:
        """Apply `patch` to one record and return it, or None if it does not exist."""
        record = self.find_by_id(record_id)
        if record is None:
            return None
        with self._guard("update"):
            for field, value in patch.items():
                self._column(field)
                setattr(record, field, value)
            self._finish(commit)
            if commit and self._depth == 0:
                self.db.refresh(record)
        return record

    def _expire_loaded(self) -> None:
        # Bulk statements bypass the identity map; reload touched rows lazily
        for record in list(self.db.identity_map.values()):
            if isinstance(record, self.model):
                self.db.expire(record)

    def update_many(self, filters: Filters, patch: Dict[str, Any], commit: bool = True) -> int:
        """Bulk update; returns the number of rows changed."""
        stmt = (
            update(self.model)
            .where(*self._where(filters))
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        with self._guard("update_many"):
            changed = self.db.execute(stmt).rowcount or 0
            self._expire_loaded()
            self._finish(commit)
        return changed

    def delete_one(self, filters: Filters, commit: bool = True) -> bool:
        """Delete the first matching record; returns whether one was deleted."""
        record = self.find_one(filters)
        if record is None:
            return False
        with self._guard("delete"):
            self.db.delete(record)
            self._finish(commit)
        return True

    def delete_many(self, filters: Filters, commit: bool = True) -> int:
        stmt = delete(self.model).where(*self._where(filters)).execution_options(synchronize_session=False)
        with self._guard("delete_many"):
            removed = self.db.execute(stmt).rowcount or 0
            self._expire_loaded()
            self._finish(commit)
        return removed
