import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from validation_portal.core.errors import CacheInvalidationError
from validation_portal.services.cache import STATS_NAMESPACE, SUBMISSIONS_NAMESPACE, ResponseCache


class Counter:
    def __init__(self, payload=None):
        self.calls = 0
        self.payload = payload or {"count": 1, "results": [{"submission_id": "a"}]}

    def __call__(self):
        self.calls += 1
        return dict(self.payload, call=self.calls)


class BrokenRedis:
    def get(self, key):
        raise RedisConnectionError("down")

    def setex(self, key, ttl, value):
        raise RedisConnectionError("down")

    def incr(self, key):
        raise RedisConnectionError("down")


def test_second_read_is_a_hit_with_identical_payload(cache):
    compute = Counter()

    first = cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, compute)
    second = cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, compute)

    assert (first.hit, second.hit) == (False, True)
    assert first.payload == second.payload
    assert compute.calls == 1


def test_entries_are_scoped_per_identity_and_page(cache):
    compute = Counter()

    cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, compute)
    cache.get_or_compute(SUBMISSIONS_NAMESPACE, "juma", 1, 100, compute)
    cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 2, 100, compute)
    cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 50, compute)

    assert compute.calls == 4


def test_entries_expire_with_ttl(cache, fake_redis):
    cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, Counter())
    key = cache.key(SUBMISSIONS_NAMESPACE, "asha", 1, 100, 0)
    assert 0 < fake_redis.ttl(key) <= 300


def test_invalidation_affects_every_identity(cache):
    compute = Counter()
    for who in ("asha", "juma"):
        cache.get_or_compute(SUBMISSIONS_NAMESPACE, who, 1, 100, compute)

    assert cache.invalidate_namespace(SUBMISSIONS_NAMESPACE) == 1

    for who in ("asha", "juma"):
        assert cache.get_or_compute(SUBMISSIONS_NAMESPACE, who, 1, 100, compute).hit is False
    assert compute.calls == 4


def test_invalidation_is_per_namespace(cache):
    compute = Counter()
    cache.get_or_compute(STATS_NAMESPACE, "asha", 1, 100, compute)

    cache.invalidate_namespace(SUBMISSIONS_NAMESPACE)

    assert cache.get_or_compute(STATS_NAMESPACE, "asha", 1, 100, compute).hit is True


def test_should_store_veto_skips_caching(cache):
    compute = Counter()
    veto = lambda payload: False  # noqa: E731

    cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, compute, should_store=veto)
    again = cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, compute)

    assert again.hit is False
    assert compute.calls == 2


def test_disabled_cache_is_pass_through():
    cache = ResponseCache(None, ttl_seconds=300)
    compute = Counter()

    assert not cache.enabled
    assert cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, compute).hit is False
    assert cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, compute).hit is False
    assert compute.calls == 2
    assert cache.invalidate_namespace(SUBMISSIONS_NAMESPACE) is None


def test_unreachable_redis_on_read_falls_back_to_compute():
    cache = ResponseCache(BrokenRedis(), ttl_seconds=300)
    result = cache.get_or_compute(SUBMISSIONS_NAMESPACE, "asha", 1, 100, Counter())
    assert result.hit is False
    assert result.payload["call"] == 1


def test_unreachable_redis_on_invalidate_raises():
    cache = ResponseCache(BrokenRedis(), ttl_seconds=300)
    with pytest.raises(CacheInvalidationError):
        cache.invalidate_namespace(SUBMISSIONS_NAMESPACE)


def test_unreachable_redis_is_not_retried_within_backoff(monkeypatch):
    import redis

    from validation_portal.core import redis as redis_client
    from validation_portal.core.config import settings

    attempts = []

    def refuse(url, **kwargs):
        attempts.append(url)
        raise RedisConnectionError("refused")

    monkeypatch.setattr(redis.Redis, "from_url", refuse)
    monkeypatch.setattr(redis_client, "_client", None)
    monkeypatch.setattr(redis_client, "_failed_at", None)
    monkeypatch.setattr(settings, "REDIS_URL", "redis://cache.invalid:6379/0")
    monkeypatch.setattr(settings, "REDIS_RETRY_SECONDS", 30.0)

    assert redis_client.get_redis() is None
    assert redis_client.get_redis() is None
    assert len(attempts) == 1

    # window elapsed: the next call connects again
    monkeypatch.setattr(settings, "REDIS_RETRY_SECONDS", 0.0)
    assert redis_client.get_redis() is None
    assert len(attempts) == 2
