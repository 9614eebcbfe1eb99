from security.rate_limiter import RateLimiter


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_allows_up_to_limit_then_blocks():
    limiter = RateLimiter(limit=3, window_seconds=60, clock=_Clock())
    assert [limiter.allow(1) for _ in range(4)] == [True, True, True, False]


def test_window_slides():
    clock = _Clock()
    limiter = RateLimiter(limit=2, window_seconds=60, clock=clock)
    limiter.allow(1)
    clock.now = 30
    limiter.allow(1)
    assert not limiter.allow(1)

    clock.now = 61
    assert limiter.allow(1)


def test_users_are_counted_separately():
    limiter = RateLimiter(limit=1, window_seconds=60, clock=_Clock())
    assert limiter.allow(1)
    assert limiter.allow(2)
    assert not limiter.allow(1)
