from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional, List, Dict, Any
from sqlalchemy.orm import Session

T = TypeVar("T")

class BaseRepository(Generic[T], ABC):
    """
    CRUD contract shared by the SQLAlchemy repositories.

    Repositories never commit. They flush so constraint violations surface inside
    the caller's transaction, and the caller (service or request scope) decides
    when to commit or roll back.
    """

    @abstractmethod
    def create(self, session: Session, entity: T) -> T:
        pass

    @abstractmethod
    def get(self, session: Session, id: str) -> Optional[T]:
        pass

    @abstractmethod
    def update(self, session: Session, id: str, updates: Dict[str, Any]) -> Optional[T]:
        pass

    @abstractmethod
    def delete(self, session: Session, id: str) -> bool:
        """Remove the entity, or mark it removed where rows are soft deleted."""
        pass

    @abstractmethod
    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[T]:
        pass
