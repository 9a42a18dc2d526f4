"""Proton and neutron assembly from u/d quarks and gluons."""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Optional, Tuple

from emergence.balance import BALANCE, Balance, Recipe
from emergence.production import stability
from emergence.state import GameState, clone
from emergence.types import Catalyst, Composite, Matter

_rng = random.Random()


@dataclass
class AssemblyResult:
    success: bool = False
    produced: int = 0
    waste: int = 0
    gluons_consumed: int = 0
    reason: Optional[str] = None


def recipe_for(composite: Composite, balance: Balance = BALANCE) -> Recipe:
    if composite is Composite.PROTON:
        return balance.assembly.proton
    return balance.assembly.neutron


def can_build(state: GameState, composite: Composite, count: int = 1,
              balance: Balance = BALANCE) -> Tuple[bool, Optional[str]]:
    cfg = balance.assembly
    if state.tier < cfg.required_tier:
        return False, f"Requires E{cfg.required_tier}"
    if count <= 0:
        return False, "Nothing to build"
    recipe = recipe_for(composite, balance)
    if state.matter[Matter.U] < recipe.u * count or state.matter[Matter.D] < recipe.d * count:
        return False, "Not enough quarks"
    # With the gluon catalyst a build may start with no gluons at all.
    if not state.unlocks.gluon_catalyst and state.catalysts[Catalyst.GLUON] < recipe.gluons * count:
        return False, "Not enough gluons"
    return True, None


def build(
    state: GameState,
    composite: Composite,
    count: int = 1,
    rng: Optional[random.Random] = None,
    balance: Balance = BALANCE,
) -> Tuple[GameState, AssemblyResult]:
    """Assemble ``count`` protons or neutrons.

    Inputs are always deducted in full; output is ``floor(count * stability)``
    and the rest is waste. Only gluon consumption is random, and only with the
    gluon catalyst unlocked.
    """
    composite = Composite(composite)
    ok, reason = can_build(state, composite, count, balance)
    if not ok:
        return state, AssemblyResult(reason=reason)
    rng = rng or _rng
    recipe = recipe_for(composite, balance)
    new_state = clone(state)
    new_state.matter[Matter.U] -= recipe.u * count
    new_state.matter[Matter.D] -= recipe.d * count

    gluons_needed = recipe.gluons * count
    if new_state.unlocks.gluon_catalyst:
        consumed = sum(1 for _ in range(gluons_needed) if rng.random() > balance.assembly.catalytic_gluon_chance)
        consumed = min(consumed, int(new_state.catalysts[Catalyst.GLUON]))
    else:
        consumed = gluons_needed
    new_state.catalysts[Catalyst.GLUON] -= consumed

    produced = math.floor(count * stability(state, balance))
    new_state.composites[composite] += produced
    if composite is Composite.PROTON:
        new_state.stats.total_protons_built += produced
    else:
        new_state.stats.total_neutrons_built += produced
    return new_state, AssemblyResult(True, produced=produced, waste=count - produced, gluons_consumed=consumed)


def max_buildable(state: GameState, composite: Composite, balance: Balance = BALANCE) -> int:
    recipe = recipe_for(composite, balance)
    limits = [
        math.floor(state.matter[Matter.U] / recipe.u),
        math.floor(state.matter[Matter.D] / recipe.d),
    ]
    if not state.unlocks.gluon_catalyst:
        limits.append(math.floor(state.catalysts[Catalyst.GLUON] / recipe.gluons))
    return max(0, min(limits))
