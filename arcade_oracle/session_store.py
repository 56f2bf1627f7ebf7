import json
import logging
import time
from abc import ABC, abstractmethod
from asyncio import Lock
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Tuple

from redis.asyncio import Redis

from arcade_oracle.errors import NonceReusedError, SessionAlreadyActiveError, SessionNotFoundError

SessionKey = Tuple[str, int]

# How long a played (player, nonce) stays blocked from being played again
NONCE_RETENTION_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class CrashSession:
    crash_point: int
    start_time: float


@dataclass(frozen=True)
class DiceRoll:
    target: int
    bet_under: bool
    result: int


def game_id(player: str, nonce: int) -> str:
    return f"{player}-{nonce}"


class SessionStore(ABC):
    """Per-(player, nonce) game state.

    Crash: unused --start--> active --consume--> settled. `start` claims the
    nonce for the retention period, so a consumed or expired game can never be
    started again and its crash point is never re-drawn.

    Dice: the first roll recorded for a nonce is the only one. Later requests
    get that same roll back.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
        retention_seconds: float = NONCE_RETENTION_SECONDS,
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.retention_seconds = max(retention_seconds, ttl_seconds)

    def is_expired(self, session: CrashSession) -> bool:
        return self.clock() - session.start_time > self.ttl_seconds

    @abstractmethod
    async def start(self, player: str, nonce: int, session: CrashSession) -> None:
        """Claim the nonce and store a new session.

        Raises:
            SessionAlreadyActiveError: the nonce was already started, whether the
                game is still running, settled or expired
        """

    @abstractmethod
    async def consume(self, player: str, nonce: int) -> CrashSession:
        """Remove and return the session.

        Raises:
            SessionNotFoundError: no session, already consumed, or expired
        """

    @abstractmethod
    async def record_roll(self, player: str, nonce: int, roll: DiceRoll) -> DiceRoll:
        """Keep `roll` unless the nonce already has one.

        Returns:
            DiceRoll: the roll held for (player, nonce), which is `roll` only on first use
        """

    @abstractmethod
    async def purge_expired(self) -> int:
        """Drop sessions older than the TTL. Returns how many were dropped."""


class InMemorySessionStore(SessionStore):
    """Single-process store. Every mutation happens under one asyncio lock."""

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
        retention_seconds: float = NONCE_RETENTION_SECONDS,
    ):
        super().__init__(ttl_seconds, clock, retention_seconds)
        self.sessions: Dict[SessionKey, CrashSession] = {}
        self.claims: Dict[SessionKey, float] = {}
        self.rolls: Dict[SessionKey, Tuple[DiceRoll, float]] = {}
        self.lock = Lock()

    def _retained(self, since: float) -> bool:
        return self.clock() - since <= self.retention_seconds

    async def start(self, player: str, nonce: int, session: CrashSession) -> None:
        key = (player, nonce)
        async with self.lock:
            claimed_at = self.claims.get(key)
            if claimed_at is not None and self._retained(claimed_at):
                raise SessionAlreadyActiveError(f"Game {game_id(player, nonce)} was already started")
            self.claims[key] = self.clock()
            self.sessions[key] = session

    async def consume(self, player: str, nonce: int) -> CrashSession:
        async with self.lock:
            session = self.sessions.pop((player, nonce), None)
        if session is None or self.is_expired(session):
            raise SessionNotFoundError(f"Game {game_id(player, nonce)} not found")
        return session

    async def record_roll(self, player: str, nonce: int, roll: DiceRoll) -> DiceRoll:
        key = (player, nonce)
        async with self.lock:
            held = self.rolls.get(key)
            if held is not None and self._retained(held[1]):
                return held[0]
            self.rolls[key] = (roll, self.clock())
            return roll

    async def purge_expired(self) -> int:
        async with self.lock:
            expired = [key for key, session in self.sessions.items() if self.is_expired(session)]
            for key in expired:
                del self.sessions[key]
            stale_claims = [key for key, since in self.claims.items() if not self._retained(since)]
            for key in stale_claims:
                del self.claims[key]
            stale_rolls = [key for key, (_, since) in self.rolls.items() if not self._retained(since)]
            for key in stale_rolls:
                del self.rolls[key]
        if expired:
            logging.info(f"Purged {len(expired)} expired crash sessions")
        return len(expired)

    async def count(self) -> int:
        async with self.lock:
            return len(self.sessions)


class RedisSessionStore(SessionStore):
    """Store shared by every worker.

    Keys: `{prefix}:crash-claim:*` (SET NX, retention expiry) guards start,
    `{prefix}:crash:*` holds the running session (TTL expiry, GETDEL on consume),
    `{prefix}:dice:*` holds the first roll per nonce (SET NX, retention expiry).
    """

    def __init__(
        self,
        redis: Redis,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
        retention_seconds: float = NONCE_RETENTION_SECONDS,
        prefix: str = "arcade",
    ):
        super().__init__(ttl_seconds, clock, retention_seconds)
        self.redis = redis
        self.prefix = prefix

    def _key(self, kind: str, player: str, nonce: int) -> str:
        return f"{self.prefix}:{kind}:{player}:{nonce}"

    @property
    def _ttl_px(self) -> int:
        return max(1, int(self.ttl_seconds * 1000))

    @property
    def _retention_px(self) -> int:
        return max(1, int(self.retention_seconds * 1000))

    async def start(self, player: str, nonce: int, session: CrashSession) -> None:
        claimed = await self.redis.set(
            self._key("crash-claim", player, nonce), "1", nx=True, px=self._retention_px
        )
        if not claimed:
            raise SessionAlreadyActiveError(f"Game {game_id(player, nonce)} was already started")
        await self.redis.set(
            self._key("crash", player, nonce), json.dumps(asdict(session)), px=self._ttl_px
        )

    async def consume(self, player: str, nonce: int) -> CrashSession:
        payload = await self.redis.getdel(self._key("crash", player, nonce))
        if payload is None:
            raise SessionNotFoundError(f"Game {game_id(player, nonce)} not found")
        session = CrashSession(**json.loads(payload))
        if self.is_expired(session):
            raise SessionNotFoundError(f"Game {game_id(player, nonce)} not found")
        return session

    async def record_roll(self, player: str, nonce: int, roll: DiceRoll) -> DiceRoll:
        key = self._key("dice", player, nonce)
        # a held roll can expire between SET NX and GET; the second pass stores ours
        for _ in range(2):
            if await self.redis.set(key, json.dumps(asdict(roll)), nx=True, px=self._retention_px):
                return roll
            payload = await self.redis.get(key)
            if payload is not None:
                return DiceRoll(**json.loads(payload))
        raise NonceReusedError(f"Game {game_id(player, nonce)} could not be recorded")

    async def purge_expired(self) -> int:
        # keys carry their own PX expiry
        return 0
