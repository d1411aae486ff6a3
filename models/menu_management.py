from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, JSON
from sqlalchemy.sql import func
from utils.database import Base, enum_column
import enum

class MenuCategory(str, enum.Enum):
    APPETIZER = "appetizer"
    MAIN = "main"
    DESSERT = "dessert"
    DRINK = "drink"
    SPECIAL = "special"

class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    category = Column(enum_column(MenuCategory, "menucategory"), nullable=False)
    is_available = Column(Boolean, default=True)
    image = Column(String, nullable=True)
    preparation_time = Column(Integer, default=15)  # minutes
    is_special = Column(Boolean, default=False)
    ingredients = Column(JSON, default=list)
    nutritional_info = Column(JSON, default=dict)

    # Popularity counters
    order_count = Column(Integer, default=0, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
