"""Atom building, element fusion, and lead-sample decay.

Fusion is timed: ``start_fusion`` pays up front and the tick advances
``fusion_progress`` by real elapsed time. Decay is instant. Both feed the
two permanent unlocks (forces, periodic table).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from emergence.balance import BALANCE, Balance
from emergence.production import electron_cost, stability
from emergence.state import ActiveFusion, GameState, LeadSample, clone
from emergence.types import Boson, Catalyst, Composite, Currency, Matter

logger = logging.getLogger(__name__)


# ── Atom builder ──────────────────────────────────────────────────────


@dataclass
class AtomBuildResult:
    success: bool = False
    produced: int = 0
    waste: int = 0
    reason: Optional[str] = None


def can_build_atoms(state: GameState, count: int = 1, balance: Balance = BALANCE) -> Tuple[bool, Optional[str]]:
    cfg = balance.atoms
    if state.tier < cfg.required_tier:
        return False, f"Requires E{cfg.required_tier}"
    if count <= 0:
        return False, "Nothing to build"
    if state.composites[Composite.PROTON] < cfg.proton_cost * count:
        return False, "Not enough protons"
    if state.composites[Composite.NEUTRON] < cfg.neutron_cost * count:
        return False, "Not enough neutrons"
    if state.matter[Matter.ELECTRON] < electron_cost(state, balance) * count:
        return False, "Not enough electrons"
    return True, None


def build_atoms(state: GameState, count: int = 1, balance: Balance = BALANCE) -> Tuple[GameState, AtomBuildResult]:
    ok, reason = can_build_atoms(state, count, balance)
    if not ok:
        return state, AtomBuildResult(reason=reason)
    cfg = balance.atoms
    new_state = clone(state)
    new_state.composites[Composite.PROTON] -= cfg.proton_cost * count
    new_state.composites[Composite.NEUTRON] -= cfg.neutron_cost * count
    new_state.matter[Matter.ELECTRON] -= electron_cost(state, balance) * count

    produced = max(1, math.floor(count * stability(state, balance)))
    new_state.store.add(Currency.ATOM_UNITS, produced)
    new_state.stats.total_atoms_built += produced
    check_permanent_unlocks(new_state, balance)
    return new_state, AtomBuildResult(True, produced=produced, waste=count - produced)


def max_atoms_buildable(state: GameState, balance: Balance = BALANCE) -> int:
    cfg = balance.atoms
    return max(0, min(
        math.floor(state.composites[Composite.PROTON] / cfg.proton_cost),
        math.floor(state.composites[Composite.NEUTRON] / cfg.neutron_cost),
        math.floor(state.matter[Matter.ELECTRON] / electron_cost(state, balance)),
    ))


def check_permanent_unlocks(state: GameState, balance: Balance = BALANCE) -> None:
    """Set the one-way forces and periodic-table flags. Mutates ``state`` in place."""
    if not state.forces_unlocked:
        iron = state.element(balance.forces.iron_z)
        if state.elements_unlocked() >= balance.forces.unlock_element_count or (iron and iron.unlocked):
            state.forces_unlocked = True
            logger.info("forces unlocked")
    if not state.periodic_table_unlocked and state.stats.total_atoms_built >= balance.atoms.unlock_milestone:
        state.periodic_table_unlocked = True
        logger.info("periodic table permanently unlocked")


# ── Fusion ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FusionCost:
    atom_units: float
    photons: float
    energy: float
    time_ms: float


def fusion_cost(state: GameState, z: int, balance: Balance = BALANCE) -> FusionCost:
    cfg = balance.fusion
    atom_cost = math.ceil(cfg.base_cost * cfg.cost_scale ** z)
    time_ms = cfg.base_time_s * cfg.time_scale ** z * 1000.0
    if z > cfg.wall_z:
        time_ms /= cfg.post_wall_efficiency
        atom_cost = math.ceil(atom_cost * cfg.post_wall_cost_mult)
    time_ms /= 1.0 + state.bosons[Boson.HIGGS] * balance.forces.higgs_efficiency_bonus
    return FusionCost(
        atom_units=float(atom_cost),
        photons=float(math.ceil(z * cfg.photons_per_z)),
        energy=float(math.ceil(z * cfg.energy_per_z)),
        time_ms=float(math.ceil(time_ms)),
    )


def can_start_fusion(state: GameState, z: int, balance: Balance = BALANCE) -> Tuple[bool, Optional[str]]:
    if state.tier < balance.atoms.required_tier:
        return False, f"Requires E{balance.atoms.required_tier}"
    if not state.periodic_table_unlocked:
        return False, "Periodic table not unlocked"
    element = state.element(z)
    if element is None:
        return False, "Element not found"
    if element.unlocked:
        return False, "Already unlocked"
    if z > 1 and not state.elements[z - 2].unlocked:
        return False, f"Unlock {state.elements[z - 2].symbol} first"
    if z > balance.fusion.max_z:
        return False, "Beyond fusion limit - use decay"
    if state.active_fusion is not None:
        return False, "Fusion already in progress"
    cost = fusion_cost(state, z, balance)
    if not state.store.has(Currency.ATOM_UNITS, cost.atom_units):
        return False, f"Need {cost.atom_units:g} Atom Units"
    if state.catalysts[Catalyst.PHOTON] < cost.photons:
        return False, f"Need {cost.photons:g} Photons"
    if not state.store.has(Currency.ENERGY, cost.energy):
        return False, f"Need {cost.energy:g} Energy"
    return True, None


def start_fusion(state: GameState, z: int, now: Optional[float] = None,
                 balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    ok, reason = can_start_fusion(state, z, balance)
    if not ok:
        return state, reason
    if now is None:
        now = state.last_tick
    cost = fusion_cost(state, z, balance)
    new_state = clone(state)
    new_state.store.spend(Currency.ATOM_UNITS, cost.atom_units)
    new_state.store.spend(Currency.ENERGY, cost.energy)
    new_state.catalysts[Catalyst.PHOTON] -= cost.photons
    new_state.active_fusion = ActiveFusion(z=z, start=now)
    element = new_state.element(z)
    element.fusion_start = now
    element.fusion_progress = 0.0
    return new_state, None


def cancel_fusion(state: GameState) -> Tuple[GameState, Optional[str]]:
    """Abort the running fusion. Costs already paid are forfeited."""
    if state.active_fusion is None:
        return state, "No fusion in progress"
    new_state = clone(state)
    element = new_state.element(new_state.active_fusion.z)
    element.fusion_progress = 0.0
    element.fusion_start = None
    new_state.active_fusion = None
    return new_state, None


def advance_fusion(state: GameState, dt_ms: float, balance: Balance = BALANCE) -> Optional[int]:
    """Tick step for the active fusion. Mutates ``state``; returns Z if it completed."""
    if state.active_fusion is None:
        return None
    z = state.active_fusion.z
    element = state.element(z)
    duration = fusion_cost(state, z, balance).time_ms
    element.fusion_progress = min(1.0, element.fusion_progress + dt_ms / duration)
    if element.fusion_progress < 1.0:
        return None
    element.fusion_start = None
    state.active_fusion = None
    if element.unlocked:
        return None
    element.unlocked = True
    state.stats.elements_unlocked += 1
    check_permanent_unlocks(state, balance)
    logger.info("fusion complete: %s (Z=%d)", element.symbol, z)
    return z


# ── Decay ─────────────────────────────────────────────────────────────


def can_craft_lead_sample(state: GameState, balance: Balance = BALANCE) -> Tuple[bool, Optional[str]]:
    cfg = balance.decay
    if not state.periodic_table_unlocked:
        return False, "Periodic table not unlocked"
    lead = state.element(cfg.lead_z)
    if lead is None or not lead.unlocked:
        return False, "Need Pb unlocked"
    if state.lead_sample.crafted:
        return False, "Already crafted"
    if not state.store.has(Currency.ENERGY, cfg.lead_sample_energy):
        return False, f"Need {cfg.lead_sample_energy:g} Energy"
    if state.catalysts[Catalyst.PHOTON] < cfg.lead_sample_photons:
        return False, f"Need {cfg.lead_sample_photons:g} Photons"
    return True, None


def craft_lead_sample(state: GameState, balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    ok, reason = can_craft_lead_sample(state, balance)
    if not ok:
        return state, reason
    cfg = balance.decay
    new_state = clone(state)
    new_state.store.spend(Currency.ENERGY, cfg.lead_sample_energy)
    new_state.catalysts[Catalyst.PHOTON] -= cfg.lead_sample_photons
    new_state.lead_sample = LeadSample(
        crafted=True,
        durability=cfg.lead_sample_durability,
        max_durability=cfg.lead_sample_durability,
    )
    return new_state, None


@dataclass(frozen=True)
class DecayCost:
    durability: float
    energy: float
    boson: Boson
    bosons: float


def decay_cost(from_z: int, to_z: int, balance: Balance = BALANCE) -> DecayCost:
    cfg = balance.decay
    distance = abs(from_z - to_z)
    return DecayCost(
        durability=cfg.durability_per_step * distance,
        energy=cfg.energy_per_step * distance,
        boson=Boson.W_MINUS if to_z < from_z else Boson.W_PLUS,
        bosons=cfg.boson_cost,
    )


def can_start_decay(state: GameState, from_z: int, to_z: int,
                    balance: Balance = BALANCE) -> Tuple[bool, Optional[str]]:
    if not state.lead_sample.crafted:
        return False, "Need Lead Sample"
    if state.lead_sample.durability <= 0:
        return False, "Lead Sample depleted"
    source = state.element(from_z)
    target = state.element(to_z)
    if source is None or target is None or from_z == to_z:
        return False, "Invalid decay path"
    if not source.unlocked:
        return False, f"Need {source.symbol} unlocked"
    if target.unlocked:
        return False, "Target already unlocked"
    cost = decay_cost(from_z, to_z, balance)
    if state.lead_sample.durability < cost.durability:
        return False, "Not enough durability"
    if not state.store.has(Currency.ENERGY, cost.energy):
        return False, f"Need {cost.energy:g} Energy"
    if state.bosons[cost.boson] < cost.bosons:
        return False, f"Need {cost.bosons:g} {cost.boson.value}"
    return True, None


def start_decay(state: GameState, from_z: int, to_z: int,
                balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    """Spend durability, energy and a W boson to unlock ``to_z`` immediately."""
    ok, reason = can_start_decay(state, from_z, to_z, balance)
    if not ok:
        return state, reason
    cost = decay_cost(from_z, to_z, balance)
    new_state = clone(state)
    new_state.store.spend(Currency.ENERGY, cost.energy)
    new_state.lead_sample.durability = max(0.0, new_state.lead_sample.durability - cost.durability)
    new_state.bosons[cost.boson] -= cost.bosons
    new_state.element(to_z).unlocked = True
    new_state.stats.elements_unlocked += 1
    check_permanent_unlocks(new_state, balance)
    return new_state, None
