"""
Configuration module for Soundboard Work.
Handles app configuration, logging, session storage and cache initialization.
"""

import logging
import os
import redis
from flask_caching import Cache
from flask_session import Session
from dotenv import load_dotenv
from soundboard.api.youtube import DEFAULT_MIRRORS, DEFAULT_TIMEOUT
from soundboard.playback.detector import DEFAULT_REQUIRED_SAMPLES, DEFAULT_TOLERANCE_MS
from soundboard.playback.streaming import DEFAULT_POLL_INTERVAL
from soundboard.api.tokens import REFRESH_SKEW

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

SESSION_DIR = "/tmp/soundboard_session"


def _env_list(name, default):
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings():
    """Settings read from the environment"""
    return {
        "SECRET_KEY": os.getenv("SECRET_KEY", "your-secret-key-change-in-production"),
        "DATABASE_URL": os.getenv("DATABASE_URL"),
        "REDIS_URL": os.getenv("REDIS_URL"),
        "SPOTIFY_CLIENT_ID": os.getenv("SPOTIFY_CLIENT_ID"),
        "SPOTIFY_CLIENT_SECRET": os.getenv("SPOTIFY_CLIENT_SECRET"),
        "SPOTIFY_REDIRECT_URI": os.getenv("SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8000/spotify-auth/callback"),
        "PLAYER_POLL_INTERVAL": float(os.getenv("PLAYER_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)),
        "END_TOLERANCE_MS": int(os.getenv("END_TOLERANCE_MS", DEFAULT_TOLERANCE_MS)),
        "END_REQUIRED_SAMPLES": int(os.getenv("END_REQUIRED_SAMPLES", DEFAULT_REQUIRED_SAMPLES)),
        "TOKEN_REFRESH_SKEW": int(os.getenv("TOKEN_REFRESH_SKEW", REFRESH_SKEW)),
        "YOUTUBE_MIRRORS": _env_list("YOUTUBE_MIRRORS", DEFAULT_MIRRORS),
        "YOUTUBE_LOOKUP_TIMEOUT": float(os.getenv("YOUTUBE_LOOKUP_TIMEOUT", DEFAULT_TIMEOUT)),
        "YOUTUBE_LOOKUP": os.getenv("YOUTUBE_LOOKUP", "1") != "0",
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        "PRODUCTION": os.getenv("FLASK_ENV") == "production",
    }


def get_redis_url(redis_url):
    """Heroku Redis needs relaxed certificate checks"""
    if redis_url and redis_url.startswith("rediss://"):
        return redis_url + "?ssl_cert_reqs=none"
    return redis_url


def create_redis_client(redis_url):
    """Redis client for sessions and caching, or None when Redis is unreachable"""
    if not redis_url:
        return None
    try:
        client = redis.from_url(
            get_redis_url(redis_url),
            socket_connect_timeout=3,
            socket_timeout=3,
            retry_on_timeout=False,
        )
        client.ping()
        logger.info("Redis client connected")
        return client
    except redis.exceptions.RedisError as e:
        logger.warning(f"Redis connection failed: {e}")
        return None


def configure_session_storage(app, redis_client):
    """Redis sessions in production when available, filesystem otherwise"""
    app.config.setdefault("SESSION_PERMANENT", True)
    app.config.setdefault("SESSION_USE_SIGNER", True)
    app.config.setdefault("SESSION_KEY_PREFIX", "soundboard:")
    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")

    if "SESSION_TYPE" in app.config:
        return app.config["SESSION_TYPE"]

    if app.config["PRODUCTION"] and redis_client is not None:
        app.config["SESSION_TYPE"] = "redis"
        app.config["SESSION_REDIS"] = redis_client
        app.config["SESSION_COOKIE_SECURE"] = True
        logger.info("Using Redis for session storage (production)")
    else:
        app.config["SESSION_TYPE"] = "filesystem"
        app.config.setdefault("SESSION_FILE_DIR", SESSION_DIR)
        logger.info("Using filesystem for session storage")
    return app.config["SESSION_TYPE"]


def configure_cache(app, redis_client):
    if "CACHE_TYPE" in app.config:
        return app.config["CACHE_TYPE"]

    if redis_client is not None:
        app.config["CACHE_TYPE"] = "RedisCache"
        app.config["CACHE_REDIS_URL"] = get_redis_url(app.config["REDIS_URL"])
    else:
        logger.info("Redis not available for caching, using simple memory cache")
        app.config["CACHE_TYPE"] = "SimpleCache"
    app.config.setdefault("CACHE_DEFAULT_TIMEOUT", 300)
    return app.config["CACHE_TYPE"]


def init_app(app, overrides=None):
    """Initialize Flask app with configuration and return the cache instance"""
    app.config.update(load_settings())
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    needs_redis = "SESSION_TYPE" not in app.config or "CACHE_TYPE" not in app.config
    redis_client = create_redis_client(app.config["REDIS_URL"]) if needs_redis else None

    configure_session_storage(app, redis_client)
    Session(app)

    configure_cache(app, redis_client)
    cache = Cache(app)

    logger.info("Configuration and caching initialized successfully")
    return cache
