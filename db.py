# db.py
import contextlib
import logging
import os
import ssl
from dataclasses import dataclass

import pymysql
from dotenv import find_dotenv, load_dotenv
from sqlalchemy.pool import QueuePool

load_dotenv(find_dotenv(usecwd=True))

logger = logging.getLogger(__name__)

REQUIRED_VARS = ("DB_HOST", "DB_PORT", "DB_USER", "DB_PASS", "DB_NAME", "DB_CA_PEM")


class ConfigError(RuntimeError):
    """Raised when the environment is missing required database settings."""


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    user: str
    password: str
    database: str
    ca_pem: str
    pool_size: int = 10
    low_stock_threshold: int = 10


def required(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"Missing env var: {name}")
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Env var {name} must be an integer, got {raw!r}")


def load_settings() -> Settings:
    """Read database settings from the environment.

    Every variable in REQUIRED_VARS must be set; the first missing one
    raises ConfigError so the service never starts half-configured.
    """
    values = {name: required(name) for name in REQUIRED_VARS}
    try:
        port = int(values["DB_PORT"])
    except ValueError:
        raise ConfigError(f"Env var DB_PORT must be an integer, got {values['DB_PORT']!r}")

    return Settings(
        host=values["DB_HOST"],
        port=port,
        user=values["DB_USER"],
        password=values["DB_PASS"],
        database=values["DB_NAME"],
        ca_pem=values["DB_CA_PEM"],
        pool_size=_int_env("DB_POOL_SIZE", 10),
        low_stock_threshold=_int_env("LOW_STOCK_THRESHOLD", 10),
    )


def ssl_context(ca_pem: str) -> ssl.SSLContext:
    # DB_CA_PEM may carry the certificate itself or a path to it
    if "-----BEGIN" in ca_pem:
        return ssl.create_default_context(cadata=ca_pem)
    return ssl.create_default_context(cafile=ca_pem)


def get_connection(settings: Settings):
    return pymysql.connect(
        host=settings.host,
        port=settings.port,
        user=settings.user,
        password=settings.password,
        database=settings.database,
        ssl=ssl_context(settings.ca_pem),
        connect_timeout=10,
        charset="utf8mb4",
        cursorclass=pymysql.cursors.DictCursor
    )


def create_pool(settings: Settings) -> QueuePool:
    logger.info("Connecting to MySQL %s:%s/%s", settings.host, settings.port, settings.database)
    return QueuePool(
        lambda: get_connection(settings),
        pool_size=settings.pool_size,
        max_overflow=0,
        timeout=30,
        recycle=3600,
    )


@contextlib.contextmanager
def checkout(pool: QueuePool):
    """Borrow one connection from the pool and hand it back afterwards."""
    conn = pool.connect()
    try:
        yield conn
    finally:
        conn.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    conn = None
    try:
        conn = get_connection(load_settings())
        logger.info("Connection successful, server %s", conn.get_server_info())

        with conn.cursor() as cursor:
            cursor.execute("SELECT DATABASE() AS db")
            logger.info("Current database: %s", cursor.fetchone()["db"])
    except (ConfigError, pymysql.MySQLError) as e:
        logger.error("Connection failed: %s", e)
    finally:
        if conn is not None and conn.open:
            conn.close()
            logger.info("Connection closed.")
