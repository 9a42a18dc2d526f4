"""Desktop host: a raylib window around the engine.

The window shows a plain text status panel and maps a few keys to engine
actions. All game rules live in the engine modules; this file only wires
the scheduler, persistence and input together.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import pyray as rl

from emergence import annihilation, emerge, upgrades
from emergence.balance import BALANCE
from emergence.collider import run_collider, set_collider_mode
from emergence.save import default_save_path, load_or_create, save_game
from emergence.simulation import Simulation, apply_offline_progress
from emergence.state import GameState, now_ms
from emergence.types import BuyMode, ColliderMode, Matter, UpgradeId

logger = logging.getLogger(__name__)

WINDOW_WIDTH = 720
WINDOW_HEIGHT = 480

BACKGROUND = rl.Color(18, 20, 28, 255)
PANEL = rl.Color(32, 36, 48, 255)
TEXT = rl.Color(230, 230, 235, 255)
DIM = rl.Color(140, 145, 160, 255)
ACCENT = rl.Color(120, 200, 255, 255)

_BUY_MODES = [BuyMode.X1, BuyMode.X10, BuyMode.MAX]

_HELP = (
    "SPACE collide  T mode  Q/W quark upgrades  L/P lepton upgrades  "
    "M buy mode  A annihilate e-  E emerge  S save"
)


def _status_lines(state: GameState) -> List[str]:
    store = state.store
    target = state.tier + 1
    lines = [
        f"E{state.tier}  (best E{state.highest_tier})",
        f"Pq {store.pq:,.1f}   Pl {store.pl:,.1f}   Energy {store.energy:,.1f}",
        f"Debris {store.debris:,.0f}   Atom units {store.atom_units:,.0f}",
        f"u {state.matter[Matter.U]:,.0f}  d {state.matter[Matter.D]:,.0f}  "
        f"e- {state.matter[Matter.ELECTRON]:,.0f}  ve {state.matter[Matter.NU_E]:,.0f}",
        f"Collider T{state.collider.tier} {state.collider.mode.value}  pity {state.collider.pity:g}",
        f"Buy mode {state.buy_mode.value}",
        f"Elements unlocked {state.elements_unlocked()}",
    ]
    if target <= BALANCE.max_tier:
        progress = emerge.get_progress(state, target)
        lines.append(f"Emerge to E{target}: {progress * 100:.0f}%")
        lines.extend("  " + r.describe() for r in emerge.check_requirements(state, target))
    return lines


def _draw(state: GameState, message: Optional[str]) -> None:
    rl.begin_drawing()
    rl.clear_background(BACKGROUND)
    rl.draw_rectangle(12, 12, WINDOW_WIDTH - 24, WINDOW_HEIGHT - 60, PANEL)
    rl.draw_text("Particle Emergence", 24, 20, 24, ACCENT)
    y = 56
    for line in _status_lines(state):
        rl.draw_text(line, 24, y, 18, TEXT)
        y += 24
    if message:
        rl.draw_text(message, 24, WINDOW_HEIGHT - 80, 18, ACCENT)
    rl.draw_text(_HELP, 12, WINDOW_HEIGHT - 36, 12, DIM)
    rl.end_drawing()


def _handle_input(sim: Simulation, save_path: Path) -> Optional[str]:
    """Apply the keys pressed this frame. Returns a message to show, if any."""
    if rl.is_key_pressed(rl.KeyboardKey.KEY_SPACE):
        result = sim.dispatch(run_collider, sim.clock(), sim.rng)
        if result.reason:
            return result.reason
        return "Upgrade!" if result.success else "Collision failed"
    if rl.is_key_pressed(rl.KeyboardKey.KEY_T):
        mode = ColliderMode.LEPTON if sim.state.collider.mode is ColliderMode.QUARK else ColliderMode.QUARK
        sim.update_state(lambda s: set_collider_mode(s, mode))
        return f"Collider mode: {mode.value}"
    for key, upgrade_id in (
        (rl.KeyboardKey.KEY_Q, UpgradeId.QUARK_RATE),
        (rl.KeyboardKey.KEY_W, UpgradeId.QUARK_EFFICIENCY),
        (rl.KeyboardKey.KEY_L, UpgradeId.LEPTON_RATE),
        (rl.KeyboardKey.KEY_P, UpgradeId.PRECISION),
    ):
        if rl.is_key_pressed(key):
            result = sim.dispatch(upgrades.buy_upgrade, upgrade_id)
            return result.reason or f"Bought {result.levels}x {upgrade_id.value}"
    if rl.is_key_pressed(rl.KeyboardKey.KEY_M):
        mode = _BUY_MODES[(_BUY_MODES.index(sim.state.buy_mode) + 1) % len(_BUY_MODES)]
        sim.update_state(lambda s: upgrades.set_buy_mode(s, mode))
        return f"Buy mode: {mode.value}"
    if rl.is_key_pressed(rl.KeyboardKey.KEY_A):
        count = annihilation.pairs_available(sim.state, Matter.ELECTRON)
        result = sim.dispatch(annihilation.annihilate, Matter.ELECTRON, count, sim.rng)
        return result.reason or f"+{result.energy:g} Energy"
    if rl.is_key_pressed(rl.KeyboardKey.KEY_E):
        missing = sim.dispatch(emerge.emerge, sim.state.tier + 1)
        return missing[0] if missing else f"Emerged to E{sim.state.tier}"
    if rl.is_key_pressed(rl.KeyboardKey.KEY_S):
        return "Saved" if save_game(sim.state, save_path) else "Save failed"
    return None


async def main(save_path: Optional[Path] = None) -> None:
    save_path = save_path or default_save_path()
    rl.init_window(WINDOW_WIDTH, WINDOW_HEIGHT, "Particle Emergence")
    rl.set_target_fps(60)

    now = now_ms()
    state = apply_offline_progress(load_or_create(save_path, now), now)
    sim = Simulation(state=state, on_autosave=lambda s: save_game(s, save_path))
    sim.start()
    message: Optional[str] = None

    try:
        while not rl.window_should_close():
            sim.pump()
            message = _handle_input(sim, save_path) or message
            _draw(sim.state, message)
            await asyncio.sleep(0)
    finally:
        sim.stop()
        save_game(sim.state, save_path)
        rl.close_window()


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(main())


if __name__ == "__main__":
    run()
