import pytest

from emergence import automation
from emergence.automation import module_interval, run_automation
from emergence.types import Antimatter, AutomationModuleId, Harvester, Matter, Polarity, UpgradeId


def _with_module(state, module_id, level=1, **settings):
    module = state.automation.modules[module_id]
    module.unlocked = True
    module.enabled = True
    module.level = level
    if settings:
        state = automation.update_settings(state, module_id, **settings)
    return state


def test_mint_chips(make_state):
    same, reason = automation.mint_chips(make_state(tier=3, energy=100.0), 5)
    assert reason == "Requires E4"

    state, reason = automation.mint_chips(make_state(tier=4, energy=100.0), 5)
    assert reason is None
    assert state.automation.chips == 5
    assert state.store.energy == 50.0
    assert automation.max_chips_mintable(state) == 5


def test_unlock_and_upgrade_module(make_state):
    state = make_state(tier=4)
    state.automation.chips = 13
    state, reason = automation.unlock_module(state, AutomationModuleId.HARVESTER)
    assert reason is None
    module = state.automation.modules[AutomationModuleId.HARVESTER]
    assert module.unlocked and module.level == 1 and not module.enabled
    assert state.automation.chips == 8

    assert automation.module_cost(AutomationModuleId.HARVESTER, 1) == 8
    state, reason = automation.upgrade_module(state, AutomationModuleId.HARVESTER)
    assert reason is None
    assert state.automation.modules[AutomationModuleId.HARVESTER].level == 2
    assert state.automation.chips == 0

    state, _ = automation.toggle_module(state, AutomationModuleId.HARVESTER)
    assert state.automation.modules[AutomationModuleId.HARVESTER].enabled


def test_module_tier_gate(make_state):
    state = make_state(tier=4)
    state.automation.chips = 1000
    _, reason = automation.unlock_module(state, AutomationModuleId.ASSEMBLY)
    assert reason == "Requires E5"
    _, reason = automation.toggle_module(state, AutomationModuleId.ASSEMBLY)
    assert reason == "Module locked"


def test_settings_are_closed(make_state):
    state = make_state(tier=4)
    state = automation.update_settings(state, AutomationModuleId.COLLIDER, pq_reserve=500.0)
    assert state.automation.modules[AutomationModuleId.COLLIDER].settings.pq_reserve == 500.0
    with pytest.raises(TypeError):
        automation.update_settings(state, AutomationModuleId.COLLIDER, batch=3)


def test_interval_by_level_and_overdrive(make_state):
    state = make_state(tier=4)
    module = state.automation.modules[AutomationModuleId.COLLIDER]
    module.level = 1
    assert module_interval(module, state) == 5000.0
    module.level = 4
    assert module_interval(module, state) == 1250.0
    module.level = 100
    assert module_interval(module, state) == 250.0

    module.level = 1
    state.temp_buffs.collider_overdrive.active = True
    assert module_interval(module, state) == 2500.0
    other = state.automation.modules[AutomationModuleId.HARVESTER]
    other.level = 1
    assert module_interval(other, state) == 5000.0


def test_harvester_module_fires_on_interval(make_state):
    state = _with_module(make_state(tier=4, pq=100.0), AutomationModuleId.HARVESTER)

    same, fired = run_automation(state, 4999.0)
    assert same is state and fired == []

    state, fired = run_automation(state, 5000.0)
    assert fired == [AutomationModuleId.HARVESTER]
    assert state.upgrades[UpgradeId.QUARK_RATE] == 1
    assert state.upgrades[UpgradeId.QUARK_EFFICIENCY] == 1
    assert state.store.pq == 65.0
    assert state.automation.modules[AutomationModuleId.HARVESTER].last_run == 5000.0

    _, fired = run_automation(state, 9999.0)
    assert fired == []


def test_disabled_module_never_fires(make_state):
    state = _with_module(make_state(tier=4, pq=100.0), AutomationModuleId.HARVESTER)
    state.automation.modules[AutomationModuleId.HARVESTER].enabled = False
    _, fired = run_automation(state, 50000.0)
    assert fired == []


def test_collider_module_keeps_reserve(make_state, scripted_rng):
    state = _with_module(make_state(tier=4, pq=150.0), AutomationModuleId.COLLIDER, pq_reserve=100.0)
    new_state, fired = run_automation(state, 5000.0, rng=scripted_rng())
    assert fired == [AutomationModuleId.COLLIDER]
    assert new_state.stats.total_collider_runs == 0

    state.store.pq = 250.0
    new_state, _ = run_automation(state, 5000.0, rng=scripted_rng())
    assert new_state.stats.total_collider_runs == 1
    assert new_state.store.pq == 150.0


def test_polarity_module_moves_toward_ratio(make_state):
    state = _with_module(make_state(tier=4), AutomationModuleId.POLARITY)
    state.matter[Matter.U] = 10
    state.matter[Matter.ELECTRON] = 10
    state.antimatter[Antimatter.POSITRON] = 50
    new_state, _ = run_automation(state, 5000.0)
    assert new_state.harvesters[Harvester.QUARK].polarity is Polarity.ANTIMATTER
    assert new_state.harvesters[Harvester.LEPTON].polarity is Polarity.MATTER


def test_annihilate_module_keeps_matter(make_state):
    state = _with_module(make_state(tier=4), AutomationModuleId.ANNIHILATE, keep_matter=2.0)
    state.matter[Matter.ELECTRON] = 5
    state.antimatter[Antimatter.POSITRON] = 10
    new_state, _ = run_automation(state, 5000.0)
    assert new_state.matter[Matter.ELECTRON] == 2
    assert new_state.antimatter[Antimatter.POSITRON] == 7
    assert new_state.store.energy == 3.0
