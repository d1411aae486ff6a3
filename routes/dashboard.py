from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date, datetime, timedelta
from typing import Optional
import math
from collections import defaultdict
import logging

from utils.database import get_db
from utils.auth import get_current_super_admin
from models.menu_management import MenuItem
from models.order_management import Order, OrderStatus, PaymentStatus
from models.table_management import Table, TableStatus
from models.user import User, UserRole

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])

TIME_RANGES = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "quarter": timedelta(days=91),
    "year": timedelta(days=365),
}

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Hours shown in the traffic breakdown
SERVICE_HOURS = range(11, 24)

# Menu items at or above these multiples of the average order count rank high / average
HIGH_PERFORMER_RATIO = 1.5
AVERAGE_PERFORMER_RATIO = 0.5

# Occupancy forecast: how far back to look, base uplift and per-month seasonal adjustment (Jan..Dec)
PREDICTION_HISTORY = timedelta(days=183)
CAPACITY_FACTOR = 1.2
SEASONAL_FACTORS = [0.8, 0.85, 0.9, 0.95, 1.0, 1.1, 1.2, 1.2, 1.1, 1.0, 0.9, 1.1]


def start_of_today() -> datetime:
    return datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def settled_orders(db: Session, since: datetime):
    """Completed and paid orders created since ``since``: the ones that count as revenue."""
    return db.query(Order).filter(
        Order.created_at >= since,
        Order.status == OrderStatus.COMPLETED,
        Order.payment_status == PaymentStatus.PAID
    ).all()


@router.get("/summary")
async def get_summary(db: Session = Depends(get_db), current_user: User = Depends(get_current_super_admin)):
    today = start_of_today()

    tables_total = db.query(Table).count()
    tables_occupied = db.query(Table).filter(Table.status == TableStatus.OCCUPIED).count()

    top_items = db.query(MenuItem).order_by(MenuItem.order_count.desc()).limit(5).all()

    return {
        "tables": {
            "total": tables_total,
            "available": db.query(Table).filter(Table.status == TableStatus.AVAILABLE).count(),
            "occupied": tables_occupied,
            "occupancy_rate": round(tables_occupied / tables_total * 100, 2) if tables_total else 0,
        },
        "orders": {
            "total": db.query(Order).count(),
            "active": db.query(Order).filter(Order.status == OrderStatus.ACTIVE).count(),
            "completed": db.query(Order).filter(Order.status == OrderStatus.COMPLETED).count(),
            "today": db.query(Order).filter(Order.created_at >= today).count(),
        },
        "revenue": {
            "today": round(sum(order.total_amount for order in settled_orders(db, today)), 2),
        },
        "menu": {
            "total": db.query(MenuItem).count(),
            "available": db.query(MenuItem).filter(MenuItem.is_available == True).count(),
        },
        "users": {
            "total": db.query(User).count(),
            "active": db.query(User).filter(User.is_active == True).count(),
            "waiters": db.query(User).filter(User.role == UserRole.WAITER).count(),
        },
        "top_selling_items": [
            {"id": item.id, "name": item.name, "category": item.category.value, "order_count": item.order_count}
            for item in top_items
        ],
    }

@router.get("/sales/history")
async def get_sales_history(
    days: int = Query(30, ge=1, le=366),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    since = datetime.utcnow() - timedelta(days=days)
    orders = settled_orders(db, since)

    daily = defaultdict(lambda: {"total_sales": 0.0, "order_count": 0})
    by_category = defaultdict(lambda: {"total_sales": 0.0, "item_count": 0})
    for order in orders:
        day = daily[order.created_at.strftime("%Y-%m-%d")]
        day["total_sales"] += order.total_amount
        day["order_count"] += 1
        for item in order.items:
            if item.menu_item is None:
                continue
            category = by_category[item.menu_item.category.value]
            category["total_sales"] += item.price * item.quantity
            category["item_count"] += item.quantity

    # Traffic counts every order, settled or not
    hourly = defaultdict(int)
    for order in db.query(Order).filter(Order.created_at >= since).all():
        hourly[order.created_at.hour] += 1

    return {
        "daily_sales": [
            {"date": date, "total_sales": round(values["total_sales"], 2), "order_count": values["order_count"]}
            for date, values in sorted(daily.items())
        ],
        "sales_by_category": [
            {"category": category, "total_sales": round(values["total_sales"], 2), "item_count": values["item_count"]}
            for category, values in sorted(by_category.items())
        ],
        "hourly_traffic": [
            {"hour": hour, "order_count": count} for hour, count in sorted(hourly.items())
        ],
    }

@router.get("/performance/waiters")
async def get_waiter_performance(db: Session = Depends(get_db), current_user: User = Depends(get_current_super_admin)):
    waiters = db.query(User).filter(User.role == UserRole.WAITER).all()
    if not waiters:
        return {"waiter_performance": [], "averages": {"service_time": 0, "orders_served": 0}}

    average_service_time = sum(w.average_service_time or 0 for w in waiters) / len(waiters)
    average_orders_served = sum(w.orders_served or 0 for w in waiters) / len(waiters)

    performance = []
    for waiter in waiters:
        # Faster than average service and more orders than average both push the score up
        service_time_ratio = average_service_time / waiter.average_service_time if waiter.average_service_time else 0
        orders_served_ratio = waiter.orders_served / average_orders_served if average_orders_served else 0
        score = (service_time_ratio * 0.6 + orders_served_ratio * 0.4) * 100
        performance.append({
            "id": waiter.id,
            "name": waiter.name,
            "is_active": waiter.is_active,
            "orders_served": waiter.orders_served,
            "average_service_time": waiter.average_service_time,
            "orders_served_ratio": round(orders_served_ratio, 2),
            "service_time_ratio": round(service_time_ratio, 2),
            "performance_score": round(score),
        })

    performance.sort(key=lambda entry: entry["performance_score"], reverse=True)
    return {
        "waiter_performance": performance,
        "averages": {
            "service_time": round(average_service_time, 2),
            "orders_served": round(average_orders_served, 2),
        },
    }

@router.get("/analytics")
async def get_analytics(
    time_range: str = Query("week", pattern="^(day|week|month|quarter|year)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    if time_range == "day":
        since = start_of_today()
    else:
        since = datetime.utcnow() - TIME_RANGES[time_range]
    orders = settled_orders(db, since)

    revenue = sum(order.total_amount for order in orders)
    table_count = db.query(Table).count()

    sales_by_day = {day: 0.0 for day in WEEKDAYS}
    item_quantities = defaultdict(int)
    category_quantities = defaultdict(int)
    hourly = {f"{hour:02d}:00": 0 for hour in SERVICE_HOURS}
    for order in orders:
        sales_by_day[WEEKDAYS[order.created_at.weekday()]] += order.total_amount
        hour_label = f"{order.created_at.hour:02d}:00"
        if hour_label in hourly:
            hourly[hour_label] += 1
        for item in order.items:
            if item.menu_item is None:
                continue
            item_quantities[item.menu_item.name] += item.quantity
            category_quantities[item.menu_item.category.value] += item.quantity

    top_items = sorted(item_quantities.items(), key=lambda pair: pair[1], reverse=True)[:5]

    logger.debug(f"Analytics for {time_range}: {len(orders)} settled orders since {since.isoformat()}")
    return {
        "summary": {
            "revenue": round(revenue, 2),
            "orders": len(orders),
            "average_ticket": round(revenue / len(orders), 2) if orders else 0,
            "customers": len({order.table_id for order in orders}),
            "table_turnover": round(len(orders) / table_count, 1) if table_count else 0,
        },
        "sales": {"labels": list(sales_by_day.keys()), "data": [round(v, 2) for v in sales_by_day.values()]},
        "top_items": {"labels": [name for name, _ in top_items], "data": [qty for _, qty in top_items]},
        "category_distribution": {
            "labels": list(category_quantities.keys()),
            "data": list(category_quantities.values()),
        },
        "hourly_traffic": {"labels": list(hourly.keys()), "data": list(hourly.values())},
    }

@router.get("/predictions/occupancy")
async def get_occupancy_prediction(
    target_date: Optional[date] = Query(None, description="Day to forecast, defaults to today"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    """Forecast orders and guests per hour from the same weekday over the last six months."""
    target = target_date or datetime.utcnow().date()
    seasonal_factor = SEASONAL_FACTORS[target.month - 1]

    orders = db.query(Order).filter(
        Order.created_at >= datetime.utcnow() - PREDICTION_HISTORY,
        Order.status.in_([OrderStatus.COMPLETED, OrderStatus.ACTIVE])
    ).all()

    by_hour = defaultdict(list)
    for order in orders:
        if order.created_at.weekday() == target.weekday():
            by_hour[order.created_at.hour].append(order.customer_count)

    historical = [
        {
            "hour": hour,
            "order_count": len(customers),
            "average_customers": round(sum(customers) / len(customers), 2),
        }
        for hour, customers in sorted(by_hour.items())
    ]

    predictions = []
    for hour, customers in sorted(by_hour.items()):
        predicted_orders = round_half_up(len(customers) / len(by_hour) * CAPACITY_FACTOR)
        predicted_customers = round_half_up(sum(customers) / len(customers) * CAPACITY_FACTOR)
        predictions.append({
            "hour": hour,
            "predicted_orders": round_half_up(predicted_orders * seasonal_factor),
            "predicted_customers": round_half_up(predicted_customers * seasonal_factor),
            "confidence_level": "medium",
        })

    return {
        "target_date": target.isoformat(),
        "day_of_week": WEEKDAYS[target.weekday()],
        "seasonal_factor": seasonal_factor,
        "hourly_predictions": predictions,
        "historical_data": historical,
    }

@router.get("/analysis/menu")
async def get_menu_analysis(db: Session = Depends(get_db), current_user: User = Depends(get_current_super_admin)):
    items = db.query(MenuItem).order_by(MenuItem.order_count.desc()).all()
    average_order_count = sum(item.order_count or 0 for item in items) / len(items) if items else 0

    categories = {"high_performers": [], "average_performers": [], "low_performers": []}
    category_counts = defaultdict(int)
    for item in items:
        ratio = (item.order_count or 0) / average_order_count if average_order_count else 0
        if ratio >= HIGH_PERFORMER_RATIO:
            bucket = "high_performers"
        elif ratio >= AVERAGE_PERFORMER_RATIO:
            bucket = "average_performers"
        else:
            bucket = "low_performers"
        categories[bucket].append({
            "id": item.id,
            "name": item.name,
            "category": item.category.value,
            "order_count": item.order_count,
            "performance_ratio": round(ratio, 2),
        })
        category_counts[item.category.value] += item.order_count or 0

    most_popular = None
    if category_counts:
        name, count = max(category_counts.items(), key=lambda pair: pair[1])
        most_popular = {"category": name, "order_count": count}

    return {
        "popularity_categories": categories,
        "insights": {
            "total_items": len(items),
            "popularity_distribution": {bucket: len(entries) for bucket, entries in categories.items()},
            "recommendations": {
                "promote_items": categories["low_performers"][:3],
                "featured_items": categories["high_performers"][:5],
            },
            "categories": {"most_popular": most_popular},
        },
    }
