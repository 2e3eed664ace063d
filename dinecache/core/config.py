from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Storage mode: "mongodb" or "local" (local = no shared tier)
    STORAGE_MODE: str = "local"

    # MongoDB Configuration (only needed if STORAGE_MODE=mongodb)
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "dinecache_db"
    SHARED_CACHE_COLLECTION: str = "restaurant_cache"
    BLACKLIST_COLLECTION: str = "restaurant_blacklist"

    # Local on-device key/value store
    LOCAL_STORE_DIR: str = "data/store"

    # Upstream places provider (empty key = not configured)
    GEOAPIFY_API_KEY: str = ""
    GEOAPIFY_BASE_URL: str = "https://api.geoapify.com"
    PROVIDER_CATEGORIES: str = "catering.restaurant,catering.fast_food,catering.cafe,catering.bar"

    # Cache policy (seconds)
    LOCAL_CACHE_TTL_SECONDS: int = 4 * 60 * 60
    SHARED_CACHE_TTL_SECONDS: int = 6 * 60 * 60

    # Independent timeouts (seconds)
    PROVIDER_TIMEOUT_SECONDS: float = 10.0
    SHARED_STORE_TIMEOUT_SECONDS: float = 5.0

    DEFAULT_RADIUS_METERS: int = 5000
    DEFAULT_MAX_RESULTS: int = 20

    LOGGER: int = 20
    LOG_DIRECTORY: str = "logs"

    model_config = SettingsConfigDict(
        # Look for .env in the current folder OR the parent folder
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def shared_store_enabled(self) -> bool:
        return self.STORAGE_MODE == "mongodb"

settings = Settings()
