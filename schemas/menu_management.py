from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from models.menu_management import MenuCategory

class NutritionalInfo(BaseModel):
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fats: Optional[float] = None

class MenuItemBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    price: float = Field(..., ge=0)
    category: MenuCategory

class MenuItemCreate(MenuItemBase):
    is_available: bool = True
    image: Optional[str] = None
    preparation_time: int = Field(15, ge=0)
    is_special: bool = False
    ingredients: List[str] = []
    nutritional_info: NutritionalInfo = NutritionalInfo()

class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[MenuCategory] = None
    is_available: Optional[bool] = None
    image: Optional[str] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    is_special: Optional[bool] = None
    ingredients: Optional[List[str]] = None
    nutritional_info: Optional[NutritionalInfo] = None

class PopularityUpdate(BaseModel):
    order_count: Optional[int] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)

class MenuItemResponse(MenuItemBase):
    id: int
    is_available: bool
    image: Optional[str] = None
    preparation_time: Optional[int] = None
    is_special: bool
    ingredients: Optional[List[str]] = None
    nutritional_info: Optional[dict] = None
    order_count: int
    rating: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
