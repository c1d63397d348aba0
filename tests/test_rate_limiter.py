"""Tests for the Redis-backed write throttle."""

import redis
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rate_limiter import WriteRateLimiter


class StubPipeline:
    """Records sorted-set hits in a dict, mimicking the commands the limiter queues."""

    def __init__(self, store):
        self.store = store
        self.ops = []

    def zremrangebyscore(self, key, low, high):
        self.ops.append(("zrem", key, low, high))

    def zcard(self, key):
        self.ops.append(("zcard", key))

    def zadd(self, key, mapping):
        self.ops.append(("zadd", key, mapping))

    def expire(self, key, seconds):
        self.ops.append(("expire", key))

    def execute(self):
        results = []
        for op in self.ops:
            members = self.store.setdefault(op[1], {})
            if op[0] == "zrem":
                for member, score in list(members.items()):
                    if op[2] <= score <= op[3]:
                        del members[member]
                results.append(None)
            elif op[0] == "zcard":
                results.append(len(members))
            elif op[0] == "zadd":
                members.update(op[2])
                results.append(1)
            else:
                results.append(True)
        return results


class StubRedis:
    def __init__(self):
        self.store = {}

    def pipeline(self):
        return StubPipeline(self.store)


class BrokenRedis:
    def pipeline(self):
        raise redis.ConnectionError("redis is down")


def make_client(redis_client, limit):
    app = FastAPI()
    app.add_middleware(WriteRateLimiter, redis_client=redis_client, requests_per_minute=limit)

    @app.get("/items")
    async def read_items():
        return {"ok": True}

    @app.post("/items")
    async def write_item():
        return {"ok": True}

    return TestClient(app)


def test_writes_over_the_limit_get_429():
    client = make_client(StubRedis(), limit=2)

    statuses = [client.post("/items").status_code for _ in range(3)]

    assert statuses == [200, 200, 429]
    blocked = client.post("/items")
    assert blocked.headers["Retry-After"] == "60"
    assert blocked.json()["error"] == "rate_limited"


def test_reads_are_never_throttled():
    client = make_client(StubRedis(), limit=1)

    assert all(client.get("/items").status_code == 200 for _ in range(5))


def test_limit_is_tracked_per_forwarded_client():
    client = make_client(StubRedis(), limit=1)

    first = client.post("/items", headers={"X-Forwarded-For": "10.0.0.1"})
    second = client.post("/items", headers={"X-Forwarded-For": "10.0.0.2"})
    repeat = client.post("/items", headers={"X-Forwarded-For": "10.0.0.1"})

    assert (first.status_code, second.status_code, repeat.status_code) == (200, 200, 429)


def test_fails_open_when_redis_errors():
    client = make_client(BrokenRedis(), limit=1)

    assert [client.post("/items").status_code for _ in range(3)] == [200, 200, 200]
