import pytest

from emergence.debris import DebrisTarget, buy_debris_upgrade, debris_needed, exchange_all_debris, exchange_debris
from emergence.types import Currency, UpgradeId


@pytest.mark.parametrize("target, currency, gained", [
    (DebrisTarget.PQ, Currency.PQ, 10.0),
    (DebrisTarget.PL, Currency.PL, 5.0),
    (DebrisTarget.ENERGY, Currency.ENERGY, 2.0),
])
def test_exchange_rates(make_state, target, currency, gained):
    new_state, result = exchange_debris(make_state(debris=100.0), target, 100)
    assert result.gained == pytest.approx(gained)
    assert new_state.store.debris == 0.0
    assert new_state.store.get(currency) == pytest.approx(gained)


def test_exchange_for_pity(make_state):
    new_state, _ = exchange_debris(make_state(debris=10.0), DebrisTarget.PITY, 10)
    assert new_state.collider.pity == pytest.approx(1.0)


def test_exchange_needs_debris(make_state):
    state = make_state(debris=5.0)
    same, result = exchange_debris(state, DebrisTarget.PQ, 10)
    assert same is state and result.reason == "Not enough debris"


def test_exchange_all_floors(make_state):
    new_state, result = exchange_all_debris(make_state(debris=12.7), DebrisTarget.PQ)
    assert result.spent == 12
    assert new_state.store.debris == pytest.approx(0.7)


def test_debris_needed():
    assert debris_needed(DebrisTarget.PL, 1.0) == 20


def test_debris_shop(make_state):
    state = make_state(tier=2, debris=30.0)
    new_state, result = buy_debris_upgrade(state, UpgradeId.LEPTON_BOOST)
    assert result.success
    assert new_state.debris_upgrades[UpgradeId.LEPTON_BOOST] == 1

    same, result = buy_debris_upgrade(state, UpgradeId.QUARK_RATE)
    assert same is state and not result.success
