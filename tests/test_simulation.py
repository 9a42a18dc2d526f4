import pytest

from emergence import production
from emergence.atoms import start_fusion
from emergence.harvesters import toggle_polarity
from emergence.simulation import Simulation, apply_offline_progress, tick
from emergence.types import Antimatter, Catalyst, Harvester, Matter, UpgradeId
from emergence.upgrades import buy_upgrade


def test_tick_produces_quarks(make_state):
    state = make_state()
    new_state = tick(state, 1000.0, 1000.0)
    assert new_state.matter[Matter.U] == pytest.approx(1.0)
    assert new_state.matter[Matter.D] == pytest.approx(1.0)
    assert new_state.store.pq == pytest.approx(2.0)
    assert new_state.store.pl == 0.0
    assert new_state.stats.play_time == 1000.0
    assert new_state.last_tick == 1000.0
    assert state.store.pq == 0.0


def test_tick_produces_leptons_from_tier1(make_state):
    new_state = tick(make_state(tier=1), 1000.0, 1000.0)
    assert new_state.matter[Matter.ELECTRON] == pytest.approx(0.15)
    assert new_state.store.pl == pytest.approx(0.3)


def test_polarity_toggle_and_antimatter_output(make_state):
    same, reason = toggle_polarity(make_state(tier=3), Harvester.QUARK)
    assert reason == "Requires E4"

    state, reason = toggle_polarity(make_state(tier=4), Harvester.QUARK)
    assert reason is None
    assert state.harvesters[Harvester.QUARK].cooldown == 10000.0
    _, reason = toggle_polarity(state, Harvester.QUARK)
    assert reason == "Polarity switch cooling down"

    state = tick(state, 1000.0, 1000.0)
    assert state.antimatter[Antimatter.U_BAR] == pytest.approx(1.0)
    assert state.matter[Matter.U] == 0.0
    assert state.harvesters[Harvester.QUARK].cooldown == 9000.0

    state = tick(state, 20000.0, 21000.0)
    assert state.harvesters[Harvester.QUARK].cooldown == 0.0


def test_overdrive_expires_at_end(make_state):
    state = make_state()
    state.temp_buffs.collider_overdrive.active = True
    state.temp_buffs.collider_overdrive.end = 5000.0
    state = tick(state, 50.0, 4999.0)
    assert state.temp_buffs.collider_overdrive.active
    state = tick(state, 50.0, 5000.0)
    assert not state.temp_buffs.collider_overdrive.active


def test_offline_one_hour(make_state):
    state = make_state(now=0.0)
    expected = (1.0 + 1.0) * production.pq_factor(state) * 3600 * 0.6
    new_state = apply_offline_progress(state, 3_600_000.0)
    assert new_state.store.pq == pytest.approx(expected)
    assert new_state.last_tick == 3_600_000.0
    assert new_state.stats.play_time == 3_600_000.0


def test_offline_under_one_second_is_noop(make_state):
    state = make_state(now=0.0)
    assert apply_offline_progress(state, 999.0) is state


def test_offline_capped_at_eight_hours(make_state):
    state = make_state(now=0.0)
    new_state = apply_offline_progress(state, 24 * 3_600_000.0)
    assert new_state.store.pq == pytest.approx(2.0 * 8 * 3600 * 0.6)
    assert new_state.last_tick == 24 * 3_600_000.0


def test_offline_does_not_advance_fusion(make_state):
    state = make_state(tier=6, atom_units=100.0, energy=10.0)
    state.periodic_table_unlocked = True
    state.catalysts[Catalyst.PHOTON] = 10
    state, _ = start_fusion(state, 1, now=0.0)
    new_state = apply_offline_progress(state, 3_600_000.0)
    assert new_state.active_fusion is not None
    assert new_state.element(1).fusion_progress == 0.0


def test_scheduler_waits_for_tick_interval(make_state, clock):
    sim = Simulation(state=make_state(), clock=clock)
    assert not sim.pump()  # not started

    sim.start()
    clock.t = 49.0
    assert not sim.pump()
    clock.t = 50.0
    assert sim.pump()
    assert sim.state.last_tick == 50.0
    assert sim.state.store.pq == pytest.approx(0.1)

    # A late pump ticks once with the actual elapsed time.
    clock.t = 250.0
    assert sim.pump()
    assert sim.total_ticks == 2
    assert sim.state.stats.play_time == 250.0


def test_scheduler_hooks_run_on_their_own_cadence(make_state, clock):
    rendered, saved = [], []
    sim = Simulation(
        state=make_state(),
        clock=clock,
        on_render=rendered.append,
        on_autosave=saved.append,
    )
    sim.start()
    clock.t = 60.0
    sim.pump()
    assert rendered == [] and saved == []
    clock.t = 100.0
    sim.pump()
    assert len(rendered) == 1
    clock.t = 15000.0
    sim.pump()
    assert len(saved) == 1
    assert saved[0] is sim.state

    sim.stop()
    clock.t = 40000.0
    assert not sim.pump()
    assert len(saved) == 1


def test_dispatch_keeps_new_state(make_state, clock):
    sim = Simulation(state=make_state(pq=10.0), clock=clock)
    result = sim.dispatch(buy_upgrade, UpgradeId.QUARK_RATE)
    assert result.success
    assert sim.state.upgrades[UpgradeId.QUARK_RATE] == 1
