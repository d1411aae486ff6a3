import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./floorpos.db")

# JWT Configuration
SECRET_KEY = os.getenv("SECRET_KEY", "floorpos-dev-secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Realtime client reconnect policy
REALTIME_RECONNECT_ATTEMPTS = int(os.getenv("REALTIME_RECONNECT_ATTEMPTS", 5))
REALTIME_RECONNECT_DELAY = float(os.getenv("REALTIME_RECONNECT_DELAY", 2))

# Minutes added to the creation time to estimate delivery of a new order
ORDER_ETA_MINUTES = int(os.getenv("ORDER_ETA_MINUTES", 20))
