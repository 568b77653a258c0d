import os
import logging

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./shop.db")
JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
ALGO = "HS256"
ACCESS_MIN = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))
RABBITMQ_URL = os.getenv("RABBITMQ_URL", "")
SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("SERVER_PORT", "8080"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SIGNUP_BONUS = 1000


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
