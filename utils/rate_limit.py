"""
Модуль: `utils/rate_limit.py`.
Назначение: Ограничение частоты входов, регистраций и запросов ссылок восстановления.

Лимитер хранит время попыток в памяти процесса (скользящее окно), поэтому
при нескольких воркерах каждый считает попытки отдельно.
"""

import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from threading import Lock

from flask import current_app, request


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    limit: int
    window_seconds: int


SIGNUP = RateLimitRule("signup", limit=10, window_seconds=15 * 60)
SIGNIN_PER_IP = RateLimitRule("signin_ip", limit=20, window_seconds=10 * 60)
SIGNIN_PER_EMAIL = RateLimitRule("signin_email", limit=10, window_seconds=10 * 60)
PASSWORD_RECOVERY = RateLimitRule("forgot_password_ip", limit=8, window_seconds=15 * 60)


class InMemoryRateLimiter:
    def __init__(self, clock=time.monotonic):
        self._attempts = defaultdict(deque)
        self._lock = Lock()
        self._clock = clock

    @staticmethod
    def _expire(attempts: deque, now: float, window_seconds: int) -> None:
        while attempts and now - attempts[0] >= window_seconds:
            attempts.popleft()

    def hit(self, key: str, rule: RateLimitRule) -> bool:
        """Регистрирует попытку. False – лимит правила в текущем окне исчерпан."""
        if rule.limit <= 0 or rule.window_seconds <= 0:
            return False

        now = self._clock()
        with self._lock:
            attempts = self._attempts[key]
            self._expire(attempts, now, rule.window_seconds)
            if len(attempts) >= rule.limit:
                return False
            attempts.append(now)
        return True

    def retry_after(self, key: str, rule: RateLimitRule) -> int:
        """Секунды до освобождения места в окне (0, если попытка возможна сейчас)."""
        now = self._clock()
        with self._lock:
            attempts = self._attempts.get(key)
            if not attempts:
                return 0
            self._expire(attempts, now, rule.window_seconds)
            if len(attempts) < rule.limit:
                return 0
            return max(1, math.ceil(attempts[0] + rule.window_seconds - now))

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


def client_address() -> str:
    """IP клиента: первый адрес из X-Forwarded-For или адрес соединения."""
    forwarded = request.headers.get("X-Forwarded-For", "").split(",", 1)[0].strip()
    return forwarded or request.remote_addr or "unknown"


def _limiter() -> InMemoryRateLimiter | None:
    if not current_app.config.get("RATE_LIMIT_ENABLED", True):
        return None
    return current_app.extensions.get("rate_limiter")


def _key(rule: RateLimitRule, identity: str | None) -> str:
    return f"{rule.name}:{identity or client_address()}"


def is_rate_limited(rule: RateLimitRule, identity: str | None = None) -> bool:
    limiter = _limiter()
    if limiter is None:
        return False
    return not limiter.hit(_key(rule, identity), rule)


def retry_after_seconds(rule: RateLimitRule, identity: str | None = None) -> int:
    limiter = _limiter()
    if limiter is None:
        return 0
    return limiter.retry_after(_key(rule, identity), rule)
