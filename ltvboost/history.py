"""Redis-backed calculation history and rate limiting."""
import json
import time

from loguru import logger


class HistoryStore:
    """Per-user calculation history and rate limiting with Redis (graceful fallback to in-memory)."""

    def __init__(self, redis_url: str = "redis://localhost:6379/0", max_history: int = 50):
        self.max_history = max_history
        self.redis = None
        self._memory_history: dict[int, list] = {}
        self._memory_rates: dict[int, list] = {}
        try:
            import redis as redis_lib
            self.redis = redis_lib.from_url(redis_url, decode_responses=True)
            self.redis.ping()
        except Exception as e:
            logger.warning("Redis unavailable ({}), using in-memory history", e)
            self.redis = None

    def add_record(self, user_id: int, calculator: str, summary: str):
        """Save a calculation record."""
        record = {
            "calculator": calculator,
            "summary": summary[:200],
            "ts": int(time.time()),
        }
        if self.redis:
            key = f"ltvboost:history:{user_id}"
            self.redis.lpush(key, json.dumps(record))
            self.redis.ltrim(key, 0, self.max_history - 1)
        else:
            history = self._memory_history.setdefault(user_id, [])
            history.insert(0, record)
            del history[self.max_history:]

    def get_history(self, user_id: int, limit: int = 10) -> list[dict]:
        """Get recent calculations, newest first."""
        if self.redis:
            key = f"ltvboost:history:{user_id}"
            items = self.redis.lrange(key, 0, limit - 1)
            return [json.loads(i) for i in items]
        return self._memory_history.get(user_id, [])[:limit]

    def check_rate_limit(self, user_id: int, max_per_min: int = 10) -> bool:
        """Return True if user is within rate limit."""
        now = time.time()
        if self.redis:
            key = f"ltvboost:rate:{user_id}"
            pipe = self.redis.pipeline()
            pipe.zadd(key, {str(now): now})
            pipe.zremrangebyscore(key, 0, now - 60)
            pipe.zcard(key)
            pipe.expire(key, 120)
            results = pipe.execute()
            return results[2] <= max_per_min
        rates = [t for t in self._memory_rates.get(user_id, []) if t > now - 60]
        rates.append(now)
        self._memory_rates[user_id] = rates
        return len(rates) <= max_per_min

    def get_stats(self, user_id: int) -> dict:
        """Count of calculations per calculator."""
        history = self.get_history(user_id, limit=self.max_history)
        calculators: dict[str, int] = {}
        for r in history:
            name = r.get("calculator", "unknown")
            calculators[name] = calculators.get(name, 0) + 1
        return {
            "total": len(history),
            "calculators": calculators,
        }
