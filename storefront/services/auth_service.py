# storefront/services/auth_service.py
import hashlib
import hmac
import secrets
from functools import lru_cache

import redis

from storefront.domain.errors import AuthenticationError, TooManyAttemptsError
from storefront.utils.retry import redis_retry
from storefront.utils.settings import (
    REDIS_URL,
    ADMIN_PASSWORD,
    ADMIN_PASSWORD_HASH,
    ADMIN_MAX_FAILED_ATTEMPTS,
    ADMIN_LOCKOUT_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 260_000


def hash_password(password: str, salt: str | None = None, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Returns `pbkdf2_sha256$<iterations>$<salt>$<hex digest>`."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()
    return f"{ALGORITHM}${iterations}${salt}${digest}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        iterations = int(iterations)
    except ValueError:
        logger.error("ADMIN_PASSWORD_HASH is malformed")
        return False
    if algorithm != ALGORITHM:
        logger.error(f"Unsupported password hash algorithm {algorithm!r}")
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()
    return hmac.compare_digest(digest, expected)


@lru_cache(maxsize=4)
def _hash_plaintext(password: str) -> str:
    return hash_password(password)


class LoginThrottle:
    """
    Licznik nieudanych logowan per klient w redisie.
    Klucz wygasa sam po oknie blokady (EX), nie trzeba czyscic recznie.
    """

    def __init__(
        self,
        url: str | None = None,
        max_attempts: int = ADMIN_MAX_FAILED_ATTEMPTS,
        window_seconds: int = ADMIN_LOCKOUT_SECONDS,
    ):
        self.redis = redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds

    @staticmethod
    def _key(client_id: str) -> str:
        return f"admin:login:failures:{client_id}"

    @redis_retry()
    def retry_after(self, client_id: str) -> int:
        key = self._key(client_id)
        count = int(self.redis.get(key) or 0)
        if count < self.max_attempts:
            return 0
        ttl = self.redis.ttl(key)
        return ttl if ttl and ttl > 0 else self.window_seconds

    @redis_retry()
    def register_failure(self, client_id: str) -> int:
        key = self._key(client_id)
        pipe = self.redis.pipeline()
        # window starts at the first failure, later failures keep its EX
        pipe.set(key, 0, nx=True, ex=self.window_seconds)
        pipe.incr(key)
        _, count = pipe.execute()
        logger.warning(f"Failed admin login from {client_id} ({count}/{self.max_attempts})")
        return count

    @redis_retry()
    def reset(self, client_id: str) -> None:
        self.redis.delete(self._key(client_id))


class AdminAuthService:
    def __init__(
        self,
        throttle: LoginThrottle,
        password_hash: str | None = None,
        password: str | None = None,
    ):
        self.throttle = throttle
        password_hash = ADMIN_PASSWORD_HASH if password_hash is None else password_hash
        password = ADMIN_PASSWORD if password is None else password

        if password_hash:
            self.encoded = password_hash
        elif password:
            self.encoded = _hash_plaintext(password)
        else:
            self.encoded = ""

    def authenticate(self, authorization: str | None, client_id: str) -> None:
        wait = self.throttle.retry_after(client_id)
        if wait:
            raise TooManyAttemptsError(wait)

        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationError("Unauthorized")

        if not self.encoded:
            logger.error("ADMIN_PASSWORD_HASH / ADMIN_PASSWORD not configured")
            raise AuthenticationError("Invalid credentials")

        token = authorization[len("Bearer "):]
        if not verify_password(token, self.encoded):
            self.throttle.register_failure(client_id)
            raise AuthenticationError("Invalid credentials")

        self.throttle.reset(client_id)
