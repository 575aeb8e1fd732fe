"""RateLimiter 单元测试"""

from chronos.relay.services.rate_limiter import RateLimiter

SENDER = "0x" + "ab" * 20


class TestRateLimiter:
    def test_window_boundary(self, clock):
        limiter = RateLimiter(max_messages=3, window_s=60, clock=clock)
        assert [limiter.hit(SENDER) for _ in range(4)] == [False, False, False, True]

        clock.advance(59.999)
        assert limiter.hit(SENDER) is True

        clock.advance(0.001)
        assert limiter.hit(SENDER) is False
        assert limiter.bucket(SENDER).count == 1

    def test_rejected_attempts_still_count(self, clock):
        limiter = RateLimiter(max_messages=1, window_s=60, clock=clock)
        limiter.hit(SENDER)
        limiter.hit(SENDER)
        limiter.hit(SENDER)
        assert limiter.bucket(SENDER).count == 3

    def test_case_insensitive_key(self, clock):
        limiter = RateLimiter(max_messages=1, window_s=60, clock=clock)
        assert limiter.hit(SENDER) is False
        assert limiter.hit(SENDER.upper().replace("0X", "0x")) is True

    def test_prune_removes_expired(self, clock):
        limiter = RateLimiter(max_messages=1, window_s=10, clock=clock)
        limiter.hit("0x01")
        clock.advance(5)
        limiter.hit("0x02")
        clock.advance(6)
        assert limiter.prune() == 1
        assert limiter.bucket("0x01") is None
        assert limiter.bucket("0x02") is not None

    def test_prune_threshold_triggers_cleanup(self, clock):
        limiter = RateLimiter(max_messages=1, window_s=1, clock=clock, prune_threshold=2)
        limiter.hit("0x01")
        limiter.hit("0x02")
        clock.advance(2)
        limiter.hit("0x03")
        assert limiter.bucket("0x01") is None
        assert limiter.bucket("0x03") is not None
