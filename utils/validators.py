from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

def validate_field_uniqueness(db: Session, model, field: str, value, exclude_id: Optional[int] = None, label: Optional[str] = None):
    """Raise a 400 when another row of ``model`` already holds ``value`` in ``field``."""
    query = db.query(model).filter(getattr(model, field) == value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)

    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{model.__name__} with this {label or field} already exists"
        )
