"""
Base Repository — generic CRUD over one mapped model (Repository Pattern, GoF)
"""
from typing import Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy.orm import Session

from replenish.database import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):

    def __init__(self, model: Type[ModelT], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, entity_id: int) -> Optional[ModelT]:
        return self.db.query(self.model).filter(self.model.id == entity_id).first()

    def get_all(self) -> List[ModelT]:
        return self.db.query(self.model).all()

    def create(self, obj: ModelT) -> ModelT:
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, obj: ModelT, updates: dict) -> ModelT:
        for key, value in updates.items():
            setattr(obj, key, value)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, obj: ModelT) -> None:
        self.db.delete(obj)
        self.db.commit()

    def add_all(self, objs: List[ModelT]) -> List[ModelT]:
        """Stage and flush without committing; the caller owns the transaction."""
        self.db.add_all(objs)
        self.db.flush()
        return objs

    def list_paginated(self, page: int = 1, page_size: int = 20, **filters) -> Tuple[List[ModelT], int]:
        q = self.db.query(self.model)
        for key, value in filters.items():
            if value is not None and hasattr(self.model, key):
                q = q.filter(getattr(self.model, key) == value)
        total = q.count()
        items = q.order_by(self.model.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
        return items, total
