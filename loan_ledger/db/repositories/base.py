"""
Base repository pattern for database operations.

Provides common CRUD operations with SQLAlchemy ORM.
"""

from typing import TypeVar, Generic, Type, Optional, List, Any

from sqlalchemy.orm import Session, joinedload

from loan_ledger.db.models import Base


ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations.

    Generic repository pattern that can be extended for specific models.
    Provides type-safe database operations.
    """

    def __init__(self, model: Type[ModelType], session: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Database session
        """
        self.model = model
        self.session = session

    def create(self, **kwargs) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Field values for the new record

        Returns:
            Created model instance

        Raises:
            IntegrityError: If unique constraint violation or foreign key error
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        self.session.flush()  # Flush to get ID without committing
        return instance

    def get_by_id(self, id: int) -> Optional[ModelType]:
        """
        Get record by primary key ID.

        Args:
            id: Primary key ID

        Returns:
            Model instance or None if not found
        """
        return self.session.query(self.model).filter(self.model.id == id).first()

    def get_all(
        self,
        user_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
        eager_load: Optional[List[Any]] = None,
    ) -> List[ModelType]:
        """
        Get all records with optional user filtering, pagination, and eager loading.

        Args:
            user_id: Filter by user_id if provided
            limit: Maximum number of records to return
            offset: Number of records to skip
            eager_load: List of relationships to eager load with joinedload

        Returns:
            List of model instances ordered by id
        """
        query = self.session.query(self.model)

        if user_id is not None and hasattr(self.model, "user_id"):
            query = query.filter(self.model.user_id == user_id)

        if eager_load:
            for relationship in eager_load:
                query = query.options(joinedload(relationship))

        return query.order_by(self.model.id).limit(limit).offset(offset).all()

    def count(self, user_id: Optional[int] = None) -> int:
        """
        Count records.

        Args:
            user_id: Filter by user_id if provided

        Returns:
            Number of records
        """
        query = self.session.query(self.model)

        if user_id is not None and hasattr(self.model, "user_id"):
            query = query.filter(self.model.user_id == user_id)

        return query.count()
