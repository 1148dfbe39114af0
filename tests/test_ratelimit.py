from coderunner.api.ratelimit import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_blocks_after_max_within_window():
    clock = FakeClock()
    rl = RateLimiter(3, 60, clock=clock)
    assert [rl.hit("1.2.3.4") for _ in range(4)] == [True, True, True, False]
    # IP khác có hạn mức riêng
    assert rl.hit("5.6.7.8")


def test_window_slides():
    clock = FakeClock()
    rl = RateLimiter(2, 60, clock=clock)
    assert rl.hit("a")
    clock.now += 30
    assert rl.hit("a")
    assert not rl.hit("a")
    clock.now += 31  # request đầu đã ra khỏi cửa sổ
    assert rl.hit("a")
    assert not rl.hit("a")


def test_idle_clients_are_forgotten():
    clock = FakeClock()
    rl = RateLimiter(5, 10, clock=clock)
    rl.hit("a")
    rl.hit("b")
    assert rl.tracked() == 2
    clock.now += 11
    rl.hit("c")
    assert rl.tracked() == 1


def test_zero_disables_limit():
    rl = RateLimiter(0, 10)
    assert all(rl.hit("a") for _ in range(500))
