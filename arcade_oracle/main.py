import logging
from contextlib import asynccontextmanager
from decimal import Decimal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from eth_utils import keccak
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from arcade_oracle.attestation import AttestationSigner
from arcade_oracle.db import create_engine, create_session_factory, create_tables
from arcade_oracle.load_secrets import Settings, load_settings
from arcade_oracle.routers import games, players
from arcade_oracle.services.fair_games import FairGameService
from arcade_oracle.session_store import InMemorySessionStore, RedisSessionStore, SessionStore

logging.basicConfig(level=logging.DEBUG)


def tower_secret(settings: Settings) -> bytes:
    """Seed secret for Tower games. Derived from the signing key when not configured."""
    if settings.tower_seed_secret:
        return settings.tower_seed_secret.encode()
    key = settings.signer_private_key.removeprefix("0x")
    return keccak(b"tower-seed:" + bytes.fromhex(key))


def build_session_store(settings: Settings, redis: Redis | None) -> SessionStore:
    if redis is not None:
        return RedisSessionStore(
            redis, settings.session_ttl_seconds, retention_seconds=settings.nonce_retention_seconds
        )
    logging.warning("REDIS_URL is not set; game sessions and nonces are kept in this process only")
    return InMemorySessionStore(
        settings.session_ttl_seconds, retention_seconds=settings.nonce_retention_seconds
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load configuration, build the signer and stores, start the session sweep.
        Startup fails if the signing key is missing.
        """
        config = settings if settings is not None else load_settings()
        signer = AttestationSigner(config.signer_private_key)
        redis = Redis.from_url(config.redis_url) if config.redis_url else None
        store = build_session_store(config, redis)

        engine = create_engine(config.database_url)
        await create_tables(engine)

        app.state.settings = config
        app.state.Session = create_session_factory(engine)
        app.state.game_service = FairGameService(
            signer=signer,
            store=store,
            tower_secret=tower_secret(config),
            house_edge=Decimal(str(config.house_edge)),
        )

        # Abandoned crash rounds are dropped after the TTL
        scheduler = AsyncIOScheduler()
        scheduler.add_job(store.purge_expired, "interval", seconds=config.session_sweep_seconds)
        scheduler.start()
        try:
            yield
        finally:
            scheduler.shutdown()
            if redis is not None:
                await redis.aclose()
            await engine.dispose()
            logging.info("Stop Server")

    app = FastAPI(lifespan=lifespan)
    app.include_router(games.game_router)
    app.include_router(players.player_router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
