"""Emerge: the prestige reset that moves the game to the next tier."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from emergence.balance import BALANCE, Balance
from emergence.collider import tier2_particle_count
from emergence.state import (
    ColliderState,
    GameState,
    LeadSample,
    RunUnlocks,
    TempBuffs,
    clone,
    fresh_antimatter,
    fresh_bosons,
    fresh_catalysts,
    fresh_composites,
    fresh_elements,
    fresh_harvesters,
    fresh_matter,
    fresh_run_upgrades,
    is_max_tier,
)
from emergence.store import ResourceStore
from emergence.types import ANTIPARTICLE, Composite, Matter, TIER3_MATTER

logger = logging.getLogger(__name__)


def _tier3_particle_count(state: GameState) -> float:
    return sum(state.matter[m] + state.antimatter[ANTIPARTICLE[m]] for m in TIER3_MATTER)


# Requirement key -> (label, how to measure it).
_MEASURES: Dict[str, Tuple[str, Callable[[GameState], float]]] = {
    "pq": ("Pq", lambda s: s.store.pq),
    "pl": ("Pl", lambda s: s.store.pl),
    "energy": ("Energy", lambda s: s.store.energy),
    "u": ("u quarks", lambda s: s.matter[Matter.U]),
    "d": ("d quarks", lambda s: s.matter[Matter.D]),
    "e-": ("electrons", lambda s: s.matter[Matter.ELECTRON]),
    "ve": ("electron neutrinos", lambda s: s.matter[Matter.NU_E]),
    "tier2_particles": ("tier 2 particles", tier2_particle_count),
    "tier3_particles": ("tier 3 particles", _tier3_particle_count),
    "antimatter_particles": ("antimatter particles", lambda s: sum(s.antimatter.values())),
    "proton": ("protons", lambda s: s.composites[Composite.PROTON]),
    "neutron": ("neutrons", lambda s: s.composites[Composite.NEUTRON]),
}


@dataclass(frozen=True)
class Requirement:
    key: str
    label: str
    required: float
    current: float

    @property
    def met(self) -> bool:
        return self.current >= self.required

    @property
    def fraction(self) -> float:
        return min(self.current / self.required, 1.0) if self.required > 0 else 1.0

    def describe(self) -> str:
        return f"Need {self.required:g} {self.label} (have {int(self.current)})"


def requirements(state: GameState, target: int, balance: Balance = BALANCE) -> List[Requirement]:
    result = []
    for key, threshold in balance.emerge_requirements.get(target, {}).items():
        label, measure = _MEASURES[key]
        result.append(Requirement(key, label, threshold, measure(state)))
    return result


def check_requirements(state: GameState, target: int, balance: Balance = BALANCE) -> List[Requirement]:
    """Every unmet requirement for ``target``, not just the first."""
    return [r for r in requirements(state, target, balance) if not r.met]


def get_progress(state: GameState, target: int, balance: Balance = BALANCE) -> float:
    """Unweighted mean of each requirement's clamped completion."""
    reqs = requirements(state, target, balance)
    if not reqs:
        return 0.0
    return sum(r.fraction for r in reqs) / len(reqs)


def can_emerge(state: GameState, target: int, balance: Balance = BALANCE) -> Tuple[bool, List[str]]:
    if target <= state.tier:
        return False, ["Already at this level or higher"]
    if target != state.tier + 1:
        return False, ["Must emerge to next level"]
    if target > balance.max_tier:
        return False, ["No higher level"]
    missing = check_requirements(state, target, balance)
    return not missing, [r.describe() for r in missing]


def _reset_run(state: GameState) -> None:
    """Clear currencies, inventories, run upgrades and transient machine state in place."""
    state.store = ResourceStore()
    state.matter = fresh_matter()
    state.antimatter = fresh_antimatter()
    state.catalysts = fresh_catalysts()
    state.composites = fresh_composites()
    state.bosons = fresh_bosons()
    state.upgrades = fresh_run_upgrades()
    state.temp_buffs = TempBuffs()
    state.active_fusion = None
    if not state.periodic_table_unlocked:
        state.lead_sample = LeadSample()
        state.elements = fresh_elements()
    else:
        # Unlocked elements stay; only the cancelled fusion's progress goes.
        for element in state.elements:
            if not element.unlocked:
                element.fusion_progress = 0.0
                element.fusion_start = None


def emerge(state: GameState, target: int, balance: Balance = BALANCE) -> Tuple[GameState, List[str]]:
    """Move to tier ``target``. Returns the unmet requirements on failure."""
    ok, missing = can_emerge(state, target, balance)
    if not ok:
        return state, missing
    new_state = clone(state)
    _reset_run(new_state)
    new_state.unlocks = RunUnlocks()
    new_state.harvesters = fresh_harvesters()
    new_state.collider = ColliderState()
    new_state.tier = target
    new_state.highest_tier = max(new_state.highest_tier, target)
    new_state.stats.total_emerges += 1
    logger.info("emerged to E%d", target)
    return new_state, []


def restart_run(state: GameState) -> Tuple[GameState, Optional[str]]:
    """Start the final tier over without changing tier, stats or persistent progress.

    The boson-mode unlock and harvester/collider settings are kept.
    """
    if not is_max_tier(state):
        return state, "Only available at the final level"
    new_state = clone(state)
    _reset_run(new_state)
    new_state.unlocks.tier3 = False
    new_state.unlocks.gluon_catalyst = False
    new_state.collider.slotted_photons = 0
    new_state.collider.slotted_gluons = 0
    new_state.collider.pity = 0.0
    logger.info("restarted run at E%d", new_state.tier)
    return new_state, None
