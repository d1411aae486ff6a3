from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from utils.database import get_db
from models.menu_management import MenuCategory, MenuItem
from models.order_management import OrderItem
from models.user import User
from schemas.menu_management import MenuItemCreate, MenuItemUpdate, MenuItemResponse, PopularityUpdate
from utils.auth import get_current_active_user, get_current_super_admin
import logging
# Setup logging
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/menu", tags=["menu"])


def get_menu_item_or_404(db: Session, item_id: int) -> MenuItem:
    db_item = db.query(MenuItem).filter(MenuItem.id == item_id).first()
    if not db_item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Menu item not found")
    return db_item


@router.get("", response_model=List[MenuItemResponse])
async def list_menu_items(db: Session = Depends(get_db), current_user: User = Depends(get_current_active_user)):
    return db.query(MenuItem).order_by(MenuItem.category, MenuItem.name).all()

@router.post("", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    item: MenuItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    try:
        db_item = MenuItem(**item.dict())
        db.add(db_item)
        db.commit()
        db.refresh(db_item)
        logger.info(f"Menu item '{db_item.name}' created by user {current_user.id}")
        return db_item
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating menu item: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create menu item")

@router.get("/category/{category}", response_model=List[MenuItemResponse])
async def list_menu_items_by_category(
    category: MenuCategory,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return db.query(MenuItem).filter(
        MenuItem.category == category,
        MenuItem.is_available == True
    ).order_by(MenuItem.name).all()

@router.get("/special/featured", response_model=List[MenuItemResponse])
async def list_featured_items(db: Session = Depends(get_db), current_user: User = Depends(get_current_active_user)):
    return db.query(MenuItem).filter(
        MenuItem.is_special == True,
        MenuItem.is_available == True
    ).order_by(MenuItem.name).all()

@router.get("/{item_id}", response_model=MenuItemResponse)
async def get_menu_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_active_user)):
    return get_menu_item_or_404(db, item_id)

@router.put("/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: int,
    item_update: MenuItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    db_item = get_menu_item_or_404(db, item_id)

    for field, value in item_update.dict(exclude_unset=True).items():
        setattr(db_item, field, value)

    db.commit()
    db.refresh(db_item)
    logger.info(f"Menu item {item_id} updated by user {current_user.id}")
    return db_item

@router.put("/{item_id}/popularity", response_model=MenuItemResponse)
async def update_popularity(
    item_id: int,
    popularity: PopularityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    db_item = get_menu_item_or_404(db, item_id)

    if popularity.order_count is not None:
        db_item.order_count = popularity.order_count
    if popularity.rating is not None:
        db_item.rating = popularity.rating

    db.commit()
    db.refresh(db_item)
    return db_item

@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_menu_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_super_admin)):
    db_item = get_menu_item_or_404(db, item_id)

    # Ordered items keep their line history; retire them instead
    if db.query(OrderItem).filter(OrderItem.menu_item_id == item_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Menu item has been ordered and cannot be deleted; mark it unavailable instead"
        )

    db.delete(db_item)
    db.commit()
    logger.info(f"Menu item {item_id} deleted by user {current_user.id}")
