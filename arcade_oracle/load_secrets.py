import os
from dotenv import load_dotenv
from pydantic import BaseModel

from arcade_oracle.attestation import validate_private_key
from arcade_oracle.errors import ConfigurationError

load_dotenv()


class Settings(BaseModel):
    signer_private_key: str
    database_url: str
    redis_url: str | None = None
    session_ttl_seconds: float = 300.0
    session_sweep_seconds: float = 60.0
    nonce_retention_seconds: float = 604800.0
    tower_seed_secret: str | None = None
    house_edge: float = 0.10


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user = os.getenv("DB_USER")
    password = os.getenv("DB_PASSWORD")
    host = os.getenv("DB_HOST")
    port = os.getenv("DB_PORT")
    db_name = os.getenv("DB_NAME")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"


def load_settings() -> Settings:
    """Read process configuration.

    Raises:
        ConfigurationError: SIGNER_PRIVATE_KEY is absent or is not a 32-byte hex key.
            There is no fallback key.

    Returns:
        Settings: validated configuration
    """
    signer_private_key = os.getenv("SIGNER_PRIVATE_KEY")
    if not signer_private_key:
        raise ConfigurationError("SIGNER_PRIVATE_KEY is not set")
    validate_private_key(signer_private_key)

    try:
        return Settings(
            signer_private_key=signer_private_key,
            database_url=_database_url(),
            redis_url=os.getenv("REDIS_URL") or None,
            session_ttl_seconds=float(os.getenv("SESSION_TTL_SECONDS", "300")),
            session_sweep_seconds=float(os.getenv("SESSION_SWEEP_SECONDS", "60")),
            nonce_retention_seconds=float(os.getenv("NONCE_RETENTION_SECONDS", "604800")),
            tower_seed_secret=os.getenv("TOWER_SEED_SECRET") or None,
            house_edge=float(os.getenv("HOUSE_EDGE", "0.10")),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e


if __name__ == "__main__":
    settings = load_settings()
    print(settings.database_url, settings.redis_url, settings.session_ttl_seconds)
