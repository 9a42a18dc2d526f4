from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

from emergence import atoms, harvesters
from emergence.automation import run_automation
from emergence.balance import BALANCE, Balance
from emergence.state import GameState, clone, now_ms
from emergence.upgrades import UpgradeCatalog

logger = logging.getLogger(__name__)


def tick(state: GameState, dt: float, now: float, balance: Balance = BALANCE) -> GameState:
    """Advance the simulation by ``dt`` milliseconds of real time ending at ``now``.

    Order: play time, cooldowns, overdrive expiry, quark harvester, lepton
    harvester, active fusion, clock.
    """
    new_state = clone(state)
    new_state.stats.play_time += dt

    for h in new_state.harvesters.values():
        if h.cooldown > 0:
            h.cooldown = max(0.0, h.cooldown - dt)
    if new_state.collider.cooldown > 0:
        new_state.collider.cooldown = max(0.0, new_state.collider.cooldown - dt)

    overdrive = new_state.temp_buffs.collider_overdrive
    if overdrive.active and now >= overdrive.end:
        overdrive.active = False

    harvesters.produce(new_state, dt / 1000.0, balance)

    if new_state.tier >= balance.atoms.required_tier:
        atoms.advance_fusion(new_state, dt, balance)

    new_state.last_tick = now
    return new_state


def apply_offline_progress(state: GameState, now: float, balance: Balance = BALANCE) -> GameState:
    """One lump of harvester production for the time since ``last_tick``.

    Elapsed time is capped and scaled by the offline efficiency. Collider,
    crafting and fusion do not advance. Under the minimum gap nothing changes.
    """
    cfg = balance.loop
    elapsed = min(now - state.last_tick, cfg.offline_cap_ms)
    if elapsed < cfg.offline_min_ms:
        return state
    seconds = elapsed / 1000.0 * cfg.offline_efficiency
    new_state = clone(state)
    before_pq, before_pl = new_state.store.pq, new_state.store.pl
    harvesters.produce(new_state, seconds, balance)
    new_state.last_tick = now
    new_state.stats.play_time += elapsed
    logger.info(
        "offline progress: %.0fs away, +%.1f Pq, +%.1f Pl",
        elapsed / 1000.0, new_state.store.pq - before_pq, new_state.store.pl - before_pl,
    )
    return new_state


@dataclass
class Simulation:
    """Host-pumped scheduler owning the current state.

    Call ``pump`` as often as the host likes (every frame). A tick fires once
    at least one tick interval has passed, using the actual elapsed delta;
    render and autosave hooks run on their own cadence and never touch the
    simulation clock.
    """

    state: GameState
    clock: Callable[[], float] = now_ms
    balance: Balance = BALANCE
    rng: random.Random = field(default_factory=random.Random)
    catalog: Optional[UpgradeCatalog] = None
    on_render: Optional[Callable[[GameState], None]] = None
    on_autosave: Optional[Callable[[GameState], None]] = None
    running: bool = False

    _last_tick_time: float = 0.0
    _last_render_time: float = 0.0
    _last_save_time: float = 0.0
    total_ticks: int = 0

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        now = self.clock()
        self._last_tick_time = now
        self._last_render_time = now
        self._last_save_time = now

    def stop(self) -> None:
        self.running = False

    def pump(self) -> bool:
        """Run whatever is due. Returns True if a simulation tick fired."""
        if not self.running:
            return False
        now = self.clock()
        loop = self.balance.loop
        ticked = False

        elapsed = now - self._last_tick_time
        if elapsed >= loop.tick_interval_ms:
            self.state = tick(self.state, elapsed, now, self.balance)
            self.state, _ = run_automation(self.state, now, self.rng, self.balance, self.catalog)
            self._last_tick_time = now
            self.total_ticks += 1
            ticked = True

        if now - self._last_render_time >= loop.render_interval_ms:
            if self.on_render is not None:
                self.on_render(self.state)
            self._last_render_time = now

        if now - self._last_save_time >= loop.autosave_interval_ms:
            if self.on_autosave is not None:
                self.on_autosave(self.state)
            self._last_save_time = now

        return ticked

    def update_state(self, updater: Callable[[GameState], GameState]) -> None:
        self.state = updater(self.state)

    def dispatch(self, action: Callable[..., Tuple[GameState, Any]], *args, **kwargs) -> Any:
        """Apply a ``(state, ...) -> (state, result)`` action and keep the new state."""
        self.state, result = action(self.state, *args, **kwargs)
        return result
