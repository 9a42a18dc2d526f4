import random

import pytest

from emergence import annihilation, assembly, atoms, automation, collider, debris, emerge, harvesters
from emergence.simulation import tick
from emergence.types import AutomationModuleId, Catalyst, Composite, Harvester, Matter, Polarity, UpgradeId
from emergence.upgrades import buy_upgrade


def _amounts(state):
    yield from vars(state.store).values()
    yield from state.matter.values()
    yield from state.antimatter.values()
    yield from state.catalysts.values()
    yield from state.composites.values()
    yield from state.bosons.values()
    yield state.lead_sample.durability
    yield state.automation.chips
    yield state.collider.pity
    yield state.collider.slotted_photons
    yield state.collider.slotted_gluons
    for h in state.harvesters.values():
        yield h.cooldown


def _actions(rng):
    upgrade = rng.choice(list(UpgradeId))
    particle = rng.choice(list(Matter))
    composite = rng.choice(list(Composite))
    return [
        lambda s: buy_upgrade(s, upgrade)[0],
        lambda s: collider.run_collider(s, rng=rng)[0],
        lambda s: collider.run_boson_collider(s, rng=rng)[0],
        lambda s: collider.set_precision_spend(s, rng.uniform(-5, 50)),
        lambda s: collider.slot_catalyst(s, Catalyst.GLUON, rng.randint(1, 3))[0],
        lambda s: collider.set_matter_mode(s, rng.choice(list(Polarity)))[0],
        lambda s: assembly.build(s, composite, rng.randint(1, 20), rng=rng)[0],
        lambda s: annihilation.annihilate(s, particle, rng.randint(1, 20), rng=rng)[0],
        lambda s: atoms.build_atoms(s, rng.randint(1, 10))[0],
        lambda s: atoms.start_fusion(s, s.elements_unlocked() + 1, now=s.last_tick)[0],
        lambda s: atoms.craft_lead_sample(s)[0],
        lambda s: atoms.start_decay(s, 82, rng.randint(83, 118))[0],
        lambda s: debris.exchange_debris(s, rng.choice(list(debris.DebrisTarget)), rng.randint(1, 30))[0],
        lambda s: harvesters.toggle_polarity(s, rng.choice(list(Harvester)))[0],
        lambda s: automation.mint_chips(s, rng.randint(1, 5))[0],
        lambda s: automation.unlock_module(s, rng.choice(list(AutomationModuleId)))[0],
        lambda s: emerge.emerge(s, s.tier + 1)[0],
        lambda s: tick(s, 500.0, s.last_tick + 500.0),
    ]


@pytest.mark.parametrize("seed", range(5))
def test_no_negative_amounts_and_monotonic_unlocks(make_state, seed):
    rng = random.Random(seed)
    state = make_state(tier=6, pq=1e5, pl=1e4, energy=500.0, debris=50.0, atom_units=200.0)
    state.periodic_table_unlocked = True
    state.unlocks.boson_mode = True
    for z in range(1, 83):
        state.element(z).unlocked = True
    state.upgrades[UpgradeId.CATALYST_SLOTS] = 3
    for m in Matter:
        state.matter[m] = 30.0
    state.catalysts[Catalyst.GLUON] = 20.0
    state.catalysts[Catalyst.PHOTON] = 60.0
    state.composites[Composite.PROTON] = 10.0
    state.composites[Composite.NEUTRON] = 10.0

    for _ in range(300):
        before = {e.z for e in state.elements if e.unlocked}
        action = rng.choice(_actions(rng))
        state = action(state)
        assert all(value >= 0 for value in _amounts(state))
        assert before <= {e.z for e in state.elements if e.unlocked}
        assert state.active_fusion is None or not state.element(state.active_fusion.z).unlocked
