import pyray as rl

from emergence import host
from emergence.simulation import Simulation
from emergence.types import BuyMode, ColliderMode


def _press(monkeypatch, *keys):
    monkeypatch.setattr(host.rl, "is_key_pressed", lambda key: key in keys)


def test_status_lines_show_next_emerge(make_state):
    lines = host._status_lines(make_state(pq=12.0))
    assert lines[0] == "E0  (best E0)"
    assert any(line.startswith("Pq 12.0") for line in lines)
    assert any(line.startswith("Emerge to E1:") for line in lines)


def test_keys_cycle_buy_mode_and_collider_mode(monkeypatch, make_state, clock, tmp_path):
    sim = Simulation(state=make_state(), clock=clock)

    _press(monkeypatch, rl.KeyboardKey.KEY_M)
    assert host._handle_input(sim, tmp_path / "save.json") == "Buy mode: x10"
    assert sim.state.buy_mode is BuyMode.X10

    _press(monkeypatch, rl.KeyboardKey.KEY_T)
    assert host._handle_input(sim, tmp_path / "save.json") == "Collider mode: lepton"
    assert sim.state.collider.mode is ColliderMode.LEPTON


def test_save_key_writes_snapshot(monkeypatch, make_state, clock, tmp_path):
    sim = Simulation(state=make_state(), clock=clock)
    path = tmp_path / "save.json"

    _press(monkeypatch)
    assert host._handle_input(sim, path) is None
    assert not path.exists()

    _press(monkeypatch, rl.KeyboardKey.KEY_S)
    assert host._handle_input(sim, path) == "Saved"
    assert path.exists()
