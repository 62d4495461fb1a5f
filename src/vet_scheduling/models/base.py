"""
Base model class for all SQLAlchemy models in the vet-scheduling package.

This module provides the declarative base and the abstract base model that
all scheduling entities inherit from, including UUID primary keys, audit
timestamps and common utility methods.

Example:
    >>> from vet_scheduling.models.base import BaseModel
    >>> from sqlalchemy.orm import Mapped, mapped_column
    >>> from sqlalchemy import String

    >>> class MyModel(BaseModel):
    ...     __tablename__ = "my_table"
    ...     name: Mapped[str] = mapped_column(String(100))

    >>> instance = MyModel(name="Test")
    >>> data = instance.to_dict()
    >>> print(data['name'])  # "Test"
"""

import uuid
from datetime import date, datetime, time
from typing import Any, Dict, TypeVar

from sqlalchemy import DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# Type variable for model classes
T = TypeVar("T", bound="BaseModel")


class Base(DeclarativeBase):
    """
    Base declarative class for all SQLAlchemy models.

    Configures the SQLAlchemy declarative base with PostgreSQL-specific
    type mappings, particularly for UUID fields.
    """

    type_annotation_map = {
        uuid.UUID: UUID(as_uuid=True),
    }


class BaseModel(Base):
    """
    Abstract base model class providing common functionality for all entities.

    - **UUID Primary Keys**: Uses UUID4 for distributed system compatibility
    - **Audit Fields**: Automatic tracking of creation and modification times
    - **Utility Methods**: Dictionary conversion and bulk field updates

    Attributes:
        id (UUID): Primary key, automatically generated UUID4
        created_at (datetime): Timestamp when record was created
        updated_at (datetime): Timestamp when record was last updated

    Note:
        This is an abstract base class and cannot be instantiated directly.
        All concrete models must define a __tablename__ attribute.
    """

    __abstract__ = True

    # Load server-generated timestamps on flush so detached instances keep them
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        """Return string representation in the form <ModelName(id=uuid)>."""
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model instance to dictionary representation.

        Converts all column values to JSON-serializable types:
        - datetime, date and time objects to ISO format strings
        - UUID objects to string representation
        - Other types remain unchanged

        Returns:
            Dictionary with column names as keys and serialized values.
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, (datetime, date, time)):
                result[column.name] = value.isoformat()
            elif isinstance(value, uuid.UUID):
                result[column.name] = str(value)
            else:
                result[column.name] = value
        return result

    @classmethod
    def get_table_name(cls) -> str:
        """Get the database table name for this model."""
        return cls.__tablename__

    def update_fields(self, **kwargs: Any) -> None:
        """
        Update multiple fields on the model instance in a single operation.

        Args:
            **kwargs: Field names as keys and new values as values.
                     Only existing model attributes can be updated.

        Raises:
            AttributeError: If any field name doesn't exist on the model.

        Note:
            This method only modifies the instance. You must commit the
            transaction to persist changes to the database.
        """
        for field, value in kwargs.items():
            if hasattr(self, field):
                setattr(self, field, value)
            else:
                raise AttributeError(
                    f"'{self.__class__.__name__}' has no attribute '{field}'"
                )
