import os

from dotenv import load_dotenv

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI") or os.getenv("MONGO_URI_ATLAS") or "mongodb://localhost:27017"
DATABASE_NAME = os.getenv("DATABASE_NAME", "techit")

JWT_KEY = os.getenv("JWTKEY", "dev-secret-change")
JWT_ALGORITHM = "HS256"
# 0 issues tokens without an expiry
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", 4 * 60))

PORT = int(os.getenv("PORT", 5001))
APP_ENV = os.getenv("APP_ENV", "development")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")

DEFAULT_PRODUCT_IMAGE = "https://www.shutterstock.com/image-vector/missing-picture-page-website-design-600nw-1552421075.jpg"
