from typing import Optional, Dict, Any
from uuid import UUID as UUIDType
from sqlalchemy.orm import Session


class BaseCRUD:
    """Base CRUD class with common operations"""

    def __init__(self, model, db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> Optional[Any]:
        """Get record by integer ID"""
        return self.db.query(self.model).filter(self.model.id == id).first()

    def get_by_pid(self, pid: UUIDType) -> Optional[Any]:
        """Get record by UUID PID"""
        return self.db.query(self.model).filter(self.model.pid == pid).first()

    def create(self, obj_in: Dict[str, Any]) -> Any:
        """Create new record"""
        db_obj = self.model(**obj_in)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def update(self, db_obj: Any, obj_in: Dict[str, Any]) -> Any:
        """Update existing record"""
        for field, value in obj_in.items():
            setattr(db_obj, field, value)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj
