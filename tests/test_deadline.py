from sql_metrics.deadline import Deadline


class _Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_unbounded_deadline():
    d = Deadline()
    assert d.remaining() is None
    assert not d.expired()
    assert d.cap(5.0) == 5.0


def test_deadline_counts_down_and_expires():
    clock = _Clock()
    d = Deadline(10, clock=clock)
    assert d.remaining() == 10
    clock.now += 7
    assert d.remaining() == 3
    assert d.cap(5.0) == 3
    clock.now += 5
    assert d.remaining() == 0.0
    assert d.expired()


def test_zero_timeout_means_unbounded():
    assert Deadline(0).remaining() is None


def test_cancel_expires_immediately():
    d = Deadline()
    d.cancel()
    assert d.cancelled
    assert d.expired()
    assert d.cap(5.0) == 0.0
