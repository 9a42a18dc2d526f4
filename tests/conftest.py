import pytest

from emergence.state import create_initial_state


class ScriptedRng:
    """Stand-in for random.Random that replays fixed draws.

    ``random()`` pops from ``floats`` and returns ``default`` once they run
    out (high enough that no chance-based drop fires). ``randint`` pops from
    ``ints`` or returns the lower bound.
    """

    def __init__(self, floats=(), ints=(), default=0.999):
        self.floats = list(floats)
        self.ints = list(ints)
        self.default = default

    def random(self):
        if self.floats:
            return self.floats.pop(0)
        return self.default

    def randint(self, lo, hi):
        if self.ints:
            return self.ints.pop(0)
        return lo


class FakeClock:
    def __init__(self, t=0.0):
        self.t = t

    def __call__(self):
        return self.t


@pytest.fixture
def scripted_rng():
    return ScriptedRng


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_state():
    def _make(tier=0, now=0.0, **store):
        state = create_initial_state(now=now)
        state.tier = tier
        state.highest_tier = tier
        for name, value in store.items():
            setattr(state.store, name, value)
        return state
    return _make
