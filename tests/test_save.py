import json
import logging
from pathlib import Path

import pytest

from emergence import automation
from emergence.save import (
    SAVE_ENV_VAR,
    deep_merge,
    default_save_path,
    delete_save,
    export_save,
    hard_reset,
    import_save,
    load_game,
    load_or_create,
    make_envelope,
    save_game,
    state_to_dict,
)
from emergence.state import ActiveFusion, clone, create_initial_state
from emergence.types import (
    Antimatter,
    AutomationModuleId,
    Boson,
    BuyMode,
    Catalyst,
    ColliderMode,
    Composite,
    Harvester,
    Matter,
    Polarity,
    UpgradeId,
)


@pytest.fixture
def busy_state(make_state):
    state = make_state(tier=4, pq=123.5, pl=7.25, energy=3.0, debris=2.0)
    state.matter[Matter.S] = 3.5
    state.antimatter[Antimatter.POSITRON] = 1.0
    state.catalysts[Catalyst.PHOTON] = 2.0
    state.bosons[Boson.HIGGS] = 1.0
    state.upgrades[UpgradeId.QUARK_RATE] = 4
    state.debris_upgrades[UpgradeId.LEPTON_BOOST] = 1
    state.unlocks.tier3 = True
    state.harvesters[Harvester.QUARK].polarity = Polarity.ANTIMATTER
    state.harvesters[Harvester.QUARK].cooldown = 500.0
    state.collider.mode = ColliderMode.LEPTON
    state.collider.precision_spend = 3.0
    state.collider.pity = 4.0
    state.collider.slotted_photons = 1
    state.automation.chips = 9.0
    module = state.automation.modules[AutomationModuleId.ASSEMBLY]
    module.unlocked = True
    module.level = 2
    state = automation.update_settings(state, AutomationModuleId.ASSEMBLY, batch=4, composite=Composite.NEUTRON)
    state.element(1).unlocked = True
    state.element(2).fusion_progress = 0.25
    state.element(2).fusion_start = 10.0
    state.active_fusion = ActiveFusion(z=2, start=10.0)
    state.temp_buffs.collider_overdrive.active = True
    state.temp_buffs.collider_overdrive.end = 999.0
    state.stats.total_collider_runs = 12
    state.stats.play_time = 5000.5
    state.forces_unlocked = True
    state.buy_mode = BuyMode.MAX
    return state


def test_save_and_load_round_trip(tmp_path, busy_state):
    path = tmp_path / "save.json"
    assert save_game(busy_state, path, now=777.0)

    loaded = load_game(path)

    expected = clone(busy_state)
    expected.last_save = 777.0
    assert loaded == expected
    # Stamping happens on the written blob only.
    assert busy_state.last_save == 0.0
    assert not (tmp_path / "save.tmp").exists()


def test_envelope_shape(busy_state):
    envelope = make_envelope(busy_state, now=1.0)
    assert envelope["version"] == 1
    assert envelope["state"]["matter"]["s"] == 3.5
    assert envelope["state"]["automation"]["modules"]["assembly"]["settings"] == {
        "batch": 4,
        "composite": "neutron",
    }
    json.dumps(envelope)


def test_deep_merge():
    base = {"a": {"b": 1, "c": 2}, "items": [1, 2], "x": 0}
    override = {"a": {"b": 5}, "items": [], "y": None}
    assert deep_merge(base, override) == {"a": {"b": 5, "c": 2}, "items": [], "x": 0, "y": None}
    assert base == {"a": {"b": 1, "c": 2}, "items": [1, 2], "x": 0}


def test_deep_merge_restores_full_state(busy_state):
    defaults = state_to_dict(create_initial_state(0.0))
    full = state_to_dict(busy_state)
    assert deep_merge(defaults, full) == full

    partial = state_to_dict(busy_state)
    del partial["collider"]["pity"]
    del partial["stats"]
    merged = deep_merge(defaults, partial)
    assert merged["collider"]["pity"] == 0.0
    assert merged["collider"]["precision_spend"] == 3.0
    assert merged["stats"] == defaults["stats"]


def test_partial_snapshot_is_filled(tmp_path):
    path = tmp_path / "save.json"
    path.write_text(json.dumps({"version": 1, "state": {"tier": 2, "store": {"pq": 42}}}), encoding="utf-8")
    state = load_game(path, now=10.0)
    assert state.tier == 2 and state.highest_tier == 2
    assert state.store.pq == 42.0 and state.store.pl == 0.0
    assert len(state.elements) == 118
    assert set(state.automation.modules) == set(AutomationModuleId)
    assert state.last_tick == 10.0


def test_bad_values_fall_back_to_defaults(tmp_path):
    path = tmp_path / "save.json"
    blob = {
        "version": 1,
        "state": {
            "tier": 99,
            "store": {"pq": float("nan"), "pl": -5, "energy": "lots"},
            "matter": {"u": 3, "quux": 5},
            "buy_mode": "x1000",
            "bogus": True,
        },
    }
    path.write_text(json.dumps(blob), encoding="utf-8")
    state = load_game(path)
    assert state.tier == 6
    assert (state.store.pq, state.store.pl, state.store.energy) == (0.0, 0.0, 0.0)
    assert state.matter[Matter.U] == 3.0
    assert state.buy_mode is BuyMode.X1


def test_snapshot_has_no_decay_session(tmp_path, busy_state):
    assert "active_decay" not in state_to_dict(busy_state)

    path = tmp_path / "save.json"
    blob = make_envelope(busy_state, now=1.0)
    blob["state"]["active_decay"] = {"from_z": 82, "to_z": 83, "boson": "W+", "progress": 0.5}
    path.write_text(json.dumps(blob), encoding="utf-8")
    loaded = load_game(path)
    assert loaded.lead_sample == busy_state.lead_sample
    assert not hasattr(loaded, "active_decay")


def test_old_version_is_logged(tmp_path, caplog):
    path = tmp_path / "save.json"
    path.write_text(json.dumps({"version": 0, "state": {}}), encoding="utf-8")
    with caplog.at_level(logging.INFO, logger="emergence.save"):
        assert load_game(path) is not None
    assert "migrating" in caplog.text


def test_corrupt_or_missing_save_starts_new_game(tmp_path, caplog):
    path = tmp_path / "save.json"
    assert load_game(path) is None

    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="emergence.save"):
        assert load_game(path) is None
    assert "error loading save file" in caplog.text

    state = load_or_create(path, now=5.0)
    assert state.tier == 0 and state.last_tick == 5.0

    path.write_text(json.dumps({"version": 1}), encoding="utf-8")
    assert load_game(path) is None


def test_save_failure_returns_false(tmp_path, make_state):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    assert not save_game(make_state(), blocker / "save.json")


def test_export_import(busy_state):
    expected = clone(busy_state)
    expected.last_save = 5.0

    assert import_save(export_save(busy_state, now=5.0)) == expected
    assert import_save(json.dumps(make_envelope(busy_state, now=5.0))) == expected
    assert import_save("not a save") is None


def test_delete_and_hard_reset(tmp_path, busy_state):
    path = tmp_path / "save.json"
    save_game(busy_state, path)
    assert delete_save(path)
    assert not path.exists()
    assert not delete_save(path)

    save_game(busy_state, path)
    fresh = hard_reset(path, now=1.0)
    assert not path.exists()
    assert fresh.tier == 0 and fresh.debris_upgrades[UpgradeId.LEPTON_BOOST] == 0


def test_default_save_path(monkeypatch, tmp_path, make_state):
    monkeypatch.delenv(SAVE_ENV_VAR, raising=False)
    assert default_save_path() == Path.home() / ".particle_emergence" / "save.json"

    target = tmp_path / "custom.json"
    monkeypatch.setenv(SAVE_ENV_VAR, str(target))
    assert default_save_path() == target
    assert save_game(make_state())
    assert target.exists()
