import threading

from askai.services.rate_limiter import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_denies_request_over_capacity_within_window():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(capacity=2, window_seconds=10, clock=clock)

    assert limiter.admit("1.2.3.4")
    clock.advance(1)
    assert limiter.admit("1.2.3.4")
    clock.advance(1)
    assert not limiter.admit("1.2.3.4")


def test_allows_again_once_window_has_elapsed():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(capacity=2, window_seconds=10, clock=clock)

    for _ in range(3):
        limiter.admit("ip")
    assert limiter.usage("ip") == 3

    clock.advance(10)
    assert limiter.admit("ip")
    assert limiter.usage("ip") == 1


def test_oldest_timestamp_is_pruned_first():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(capacity=2, window_seconds=10, clock=clock)

    assert limiter.admit("ip")
    clock.advance(5)
    assert limiter.admit("ip")
    clock.advance(5)
    # first timestamp is exactly one window old
    assert limiter.admit("ip")
    assert limiter.usage("ip") == 2


def test_keys_are_tracked_independently():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(capacity=1, window_seconds=60, clock=clock)

    assert limiter.admit("a")
    assert limiter.admit("b")
    assert not limiter.admit("a")
    assert limiter.usage("b") == 1


def test_zero_capacity_denies_everything():
    limiter = SlidingWindowRateLimiter(capacity=0, window_seconds=60, clock=FakeClock())
    assert not limiter.admit("ip")


def test_reset_clears_all_windows():
    limiter = SlidingWindowRateLimiter(capacity=1, window_seconds=60, clock=FakeClock())
    limiter.admit("ip")
    limiter.admit("ip")
    limiter.reset()
    assert limiter.usage("ip") == 0
    assert limiter.admit("ip")


def test_concurrent_admissions_never_exceed_capacity():
    limiter = SlidingWindowRateLimiter(capacity=5, window_seconds=60, clock=FakeClock())
    results = []
    lock = threading.Lock()

    def worker():
        allowed = limiter.admit("shared")
        with lock:
            results.append(allowed)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 5
    assert limiter.usage("shared") == 20
