from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

# Import routes
from routes import auth, users, menu_management, table_management, order_management, dashboard, notifications

# Import database and logging setup
import models  # noqa: F401  registers every model on Base.metadata
from utils.database import engine, Base
from utils.config import CORS_ORIGINS
from utils.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title="FloorPOS API",
    description="Restaurant floor management: tables and joins, orders, payments and live staff notifications",
    version="1.0.0",
    openapi_tags=[
        {"name": "auth", "description": "Login and account registration"},
        {"name": "users", "description": "Staff management and performance"},
        {"name": "tables", "description": "Floor layout, joins and table status"},
        {"name": "menu", "description": "Menu items"},
        {"name": "orders", "description": "Orders, items and payments"},
        {"name": "dashboard", "description": "Sales and staff analytics"},
        {"name": "notifications", "description": "Realtime notification channel"},
    ],
    swagger_ui_parameters={
        "persistAuthorization": True,
        "defaultModelsExpandDepth": -1
    }
)


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(menu_management.router)
app.include_router(table_management.router)
app.include_router(order_management.router)
app.include_router(dashboard.router)
app.include_router(notifications.router)


@app.get("/api/v1/health", tags=["health"])
async def health():
    return {"status": "ok"}

# Root endpoint
@app.get("/")
async def root():
    return {"message": "Welcome to FloorPOS API"}

# Main run block
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
