"""Matter/antimatter pair annihilation into energy and photons."""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from emergence.balance import BALANCE, AnnihilationYield, Balance
from emergence.production import energy_amplifier_multiplier
from emergence.state import GameState, clone
from emergence.types import ANTIPARTICLE, Catalyst, Currency, Matter

_rng = random.Random()


@dataclass
class AnnihilationResult:
    success: bool = False
    energy: float = 0.0
    photons: float = 0.0
    gluons: int = 0
    reason: Optional[str] = None


def yield_table(balance: Balance = BALANCE) -> Dict[Matter, AnnihilationYield]:
    """Annihilatable particles. Neutrinos have no entry."""
    cfg = balance.annihilation
    return {
        Matter.ELECTRON: cfg.lepton,
        Matter.U: cfg.light_quark,
        Matter.D: cfg.light_quark,
        Matter.S: cfg.tier2,
        Matter.C: cfg.tier2,
        Matter.MUON: cfg.tier2,
        Matter.B: cfg.tier3,
        Matter.T: cfg.tier3,
        Matter.TAU: cfg.tier3,
    }


def pairs_available(state: GameState, particle: Matter) -> int:
    return math.floor(min(state.matter[particle], state.antimatter[ANTIPARTICLE[particle]]))


def annihilate(
    state: GameState,
    particle: Matter,
    count: int = 1,
    rng: Optional[random.Random] = None,
    balance: Balance = BALANCE,
) -> Tuple[GameState, AnnihilationResult]:
    particle = Matter(particle)
    table = yield_table(balance)
    if state.tier < balance.annihilation.required_tier:
        return state, AnnihilationResult(reason=f"Requires E{balance.annihilation.required_tier}")
    if particle not in table:
        return state, AnnihilationResult(reason=f"{particle.value} cannot be annihilated")
    anti = ANTIPARTICLE[particle]
    if count <= 0 or state.matter[particle] < count or state.antimatter[anti] < count:
        return state, AnnihilationResult(reason="Not enough pairs")

    rng = rng or _rng
    entry = table[particle]
    new_state = clone(state)
    new_state.matter[particle] -= count
    new_state.antimatter[anti] -= count

    result = AnnihilationResult(success=True)
    result.energy = entry.energy * count * energy_amplifier_multiplier(state, balance)
    result.photons = entry.photons * count
    if entry.gluon_chance > 0:
        result.gluons = sum(1 for _ in range(count) if rng.random() < entry.gluon_chance)

    new_state.store.add(Currency.ENERGY, result.energy)
    new_state.catalysts[Catalyst.PHOTON] += result.photons
    new_state.catalysts[Catalyst.GLUON] += result.gluons
    new_state.stats.total_annihilations += count
    new_state.stats.total_energy_produced += result.energy
    return new_state, result
