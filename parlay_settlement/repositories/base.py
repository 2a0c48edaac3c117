"""
Base repository class for the settlement data access layer.

Repositories keep query logic in one place so the settlement services stay
free of SQLAlchemy details and can be tested against a mocked store.

Example:
    class ParlayRepository(BaseRepository[Parlay]):
        def find_open(self) -> List[Parlay]:
            return self.query().filter(Parlay.final_outcome == ParlayResult.PENDING).all()
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, List, Iterable
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # Reads
    # ========================================================================

    def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by ID."""
        return self.db.query(self.model_type).filter(self.model_type.id == id).first()

    def find_by_ids(self, ids: Iterable[str], refresh: bool = False) -> List[T]:
        """
        Find records by a set of IDs.

        Args:
            ids: Record IDs
            refresh: Overwrite already-loaded instances with current database
                values (needed after conditional updates issued as SQL)

        Returns:
            List of records (missing IDs are skipped)
        """
        ids = list(ids)
        if not ids:
            return []
        query = self.db.query(self.model_type).filter(self.model_type.id.in_(ids))
        if refresh:
            query = query.populate_existing()
        return query.all()

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    # ========================================================================
    # Writes
    # ========================================================================

    def create(self, **kwargs) -> T:
        """
        Create a new record.

        Returns:
            The created record (not yet committed to database)
        """
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        return instance

    def update_where(self, values: dict, *criterion) -> int:
        """
        Issue a single UPDATE ... WHERE against the database.

        The statement is evaluated by the database, not against loaded
        instances, so it is safe to use as a compare-and-set.

        Returns:
            Number of rows the database reports as updated
        """
        return self.db.query(self.model_type).filter(*criterion).update(
            values, synchronize_session=False
        )

