"""
Circuit breaker and remote/local failover of the interaction store.

Run: pytest tests/test_fallback_store.py -v
"""
import pytest

from conftest import make_interaction
from shopreco.domain.repositories.fallback_interaction_repo import (
    FallbackInteractionStore,
    RemoteStoreUnavailable,
)
from shopreco.utils.circuit_breaker import CLOSED, HALF_OPEN, OPEN, CircuitBreaker


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestCircuitBreaker:

    def test_opens_after_threshold(self):
        breaker = CircuitBreaker("t", failure_threshold=2, clock=FakeClock())
        breaker.record_failure()
        assert breaker.state == CLOSED
        breaker.record_failure()
        assert breaker.state == OPEN
        assert breaker.allow_request() is False

    def test_success_resets_failure_count(self):
        breaker = CircuitBreaker("t", failure_threshold=2, clock=FakeClock())
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()
        assert breaker.state == CLOSED

    def test_half_open_after_timeout(self):
        clock = FakeClock()
        breaker = CircuitBreaker("t", failure_threshold=1, reset_timeout=30, clock=clock)
        breaker.record_failure()
        clock.now = 29.9
        assert breaker.state == OPEN
        clock.now = 30.0
        assert breaker.state == HALF_OPEN
        assert breaker.allow_request() is True

    def test_half_open_trial(self):
        clock = FakeClock()
        breaker = CircuitBreaker("t", failure_threshold=3, reset_timeout=10, clock=clock)
        for _ in range(3):
            breaker.record_failure()
        clock.now = 10
        assert breaker.state == HALF_OPEN
        breaker.record_failure()
        assert breaker.state == OPEN

        clock.now = 20
        assert breaker.state == HALF_OPEN
        breaker.record_success()
        assert breaker.state == CLOSED

    def test_half_open_lets_one_call_through(self):
        clock = FakeClock()
        breaker = CircuitBreaker("t", failure_threshold=1, reset_timeout=10, clock=clock)
        breaker.record_failure()
        clock.now = 10

        assert [breaker.allow_request() for _ in range(5)] == [True, False, False, False, False]
        breaker.record_success()
        assert breaker.allow_request() is True

    def test_unfinished_trial_frees_slot_after_timeout(self):
        clock = FakeClock()
        breaker = CircuitBreaker("t", failure_threshold=1, reset_timeout=10, clock=clock)
        breaker.record_failure()
        clock.now = 10
        assert breaker.allow_request() is True

        clock.now = 19.9
        assert breaker.allow_request() is False
        clock.now = 20
        assert breaker.allow_request() is True
        assert breaker.state == HALF_OPEN


class TestFallbackInteractionStore:

    @pytest.mark.asyncio
    async def test_remote_answer_used(self, store, remote_store, local_store):
        remote_store.recent_interactions.return_value = [make_interaction("u1", "remote")]
        await local_store.insert_interaction(make_interaction("u1", "local"))

        result = await store.recent_interactions("u1", 10)
        assert [i.product_id for i in result] == ["remote"]

    @pytest.mark.asyncio
    async def test_open_breaker_skips_remote(self, remote_store, local_store):
        remote_store.insert_interaction.side_effect = ConnectionError()
        store = FallbackInteractionStore(
            remote=remote_store, local=local_store, breaker=CircuitBreaker("t", failure_threshold=2, clock=FakeClock()),
        )
        for n in range(5):
            await store.insert_interaction(make_interaction("u1", str(n)))

        assert remote_store.insert_interaction.await_count == 2
        assert len(local_store) == 5

    @pytest.mark.asyncio
    async def test_non_degrading_read_raises(self, store, remote_store):
        remote_store.trending_scores.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            await store.trending_scores(None, {}, 5)

    @pytest.mark.asyncio
    async def test_non_degrading_read_without_remote(self, local_store):
        store = FallbackInteractionStore(remote=None, local=local_store)
        with pytest.raises(RemoteStoreUnavailable):
            await store.trending_scores(None, {}, 5)
