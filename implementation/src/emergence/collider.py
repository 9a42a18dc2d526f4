"""Collider runs: upgrade rolls, pity, drops, exotic events and the boson collider.

Randomness comes from ``rng`` (anything with ``random()`` and ``randint()``,
i.e. a ``random.Random``); the module-level generator is used when none is
passed. Draw order per standard run is fixed: success roll, product pick
(success only), gluon, photon, debris chance, debris amount, exotic chance,
exotic kind, jackpot amounts.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from emergence.balance import BALANCE, Balance, ColliderTierConfig
from emergence.production import catalyst_slot_capacity, max_precision_spend, precision_bonus
from emergence.state import GameState, clone
from emergence.types import (
    ANTIPARTICLE,
    Antimatter,
    Boson,
    Catalyst,
    COLLIDER_PRODUCTS,
    ColliderMode,
    Currency,
    FAILURE_PRODUCTS,
    Matter,
    Polarity,
    TIER2_MATTER,
)

logger = logging.getLogger(__name__)

_rng = random.Random()

Particle = Union[Matter, Antimatter]


class ExoticEventKind(str, Enum):
    GUARANTEED_UPGRADE = "guaranteed_upgrade"
    CATALYST_JACKPOT = "catalyst_jackpot"
    OVERDRIVE = "overdrive"


@dataclass
class ExoticEvent:
    kind: ExoticEventKind
    photons: int = 0
    gluons: int = 0


@dataclass
class ColliderResult:
    success: bool = False
    particles: Dict[Particle, float] = field(default_factory=dict)
    photon_drop: int = 0
    gluon_drop: int = 0
    debris_drop: int = 0
    exotic_event: Optional[ExoticEvent] = None
    pity_gained: int = 0
    pity_triggered: bool = False
    energy_gained: float = 0.0
    reason: Optional[str] = None


@dataclass
class BosonRunResult:
    success: bool = False
    boson: Optional[Boson] = None
    photons: int = 0
    gluons: int = 0
    debris: int = 0
    reason: Optional[str] = None


def _tier_config(state: GameState, balance: Balance) -> Optional[ColliderTierConfig]:
    return balance.collider.get(state.collider.tier)


def _route(state: GameState, particle: Matter, amount: float) -> Particle:
    """Credit ``particle`` (or its antiparticle in antimatter mode) and return the symbol used."""
    if state.collider.matter_mode is Polarity.ANTIMATTER:
        anti = ANTIPARTICLE[particle]
        state.antimatter[anti] += amount
        return anti
    state.matter[particle] += amount
    return particle


def pity_threshold(state: GameState, balance: Balance = BALANCE) -> float:
    cfg = _tier_config(state, balance)
    if cfg is None:
        return balance.pity.base_threshold
    if cfg.fixed_pity_threshold is not None:
        return cfg.fixed_pity_threshold
    return balance.pity.base_threshold - state.collider.precision_spend * balance.pity.reduction_per_pl


def upgrade_chance(state: GameState, balance: Balance = BALANCE) -> float:
    """Success chance before the pity override. Deliberately not clamped."""
    cfg = _tier_config(state, balance)
    if cfg is None:
        return 0.0
    collider = state.collider
    chance = cfg.base_upgrade_chance
    chance += collider.precision_spend * cfg.precision_bonus_per_pl
    chance += precision_bonus(state, balance)
    chance += collider.slotted_photons * balance.catalyst_slots.photon_boost
    chance += collider.slotted_gluons * balance.catalyst_slots.gluon_boost
    if collider.matter_mode is Polarity.ANTIMATTER and state.tier >= balance.antimatter.required_tier:
        chance += balance.antimatter.collider_chance_penalty
    return chance


def can_run_collider(state: GameState, balance: Balance = BALANCE) -> Tuple[bool, Optional[str]]:
    cfg = _tier_config(state, balance)
    if cfg is None:
        return False, "Invalid tier"
    if state.tier < cfg.required_tier:
        return False, f"Requires E{cfg.required_tier}"
    if state.collider.tier == 3 and not state.unlocks.tier3:
        return False, "Tier 3 not unlocked"
    if not state.store.has(Currency.PQ, cfg.base_cost):
        return False, f"Need {cfg.base_cost:g} Pq"
    if cfg.energy_cost > 0 and not state.store.has(Currency.ENERGY, cfg.energy_cost):
        return False, f"Need {cfg.energy_cost:g} Energy"
    if not state.store.has(Currency.PL, state.collider.precision_spend):
        return False, "Not enough Pl for precision"
    return True, None


def _roll_exotic_event(rng, balance: Balance) -> ExoticEvent:
    cfg = balance.exotic
    roll = rng.random()
    if roll < cfg.guaranteed_upgrade_weight:
        return ExoticEvent(ExoticEventKind.GUARANTEED_UPGRADE)
    if roll < cfg.guaranteed_upgrade_weight + cfg.catalyst_jackpot_weight:
        return ExoticEvent(
            ExoticEventKind.CATALYST_JACKPOT,
            photons=rng.randint(*cfg.jackpot_photons),
            gluons=rng.randint(*cfg.jackpot_gluons),
        )
    return ExoticEvent(ExoticEventKind.OVERDRIVE)


def _apply_exotic_event(state: GameState, event: ExoticEvent, now: float, balance: Balance) -> None:
    if event.kind is ExoticEventKind.GUARANTEED_UPGRADE:
        # Any threshold is below the sentinel, so the next run succeeds.
        state.collider.pity = balance.pity.guaranteed_sentinel
    elif event.kind is ExoticEventKind.CATALYST_JACKPOT:
        state.catalysts[Catalyst.PHOTON] += event.photons
        state.catalysts[Catalyst.GLUON] += event.gluons
    else:
        overdrive = state.temp_buffs.collider_overdrive
        overdrive.active = True
        overdrive.end = now + balance.exotic.overdrive_duration_ms


def run_collider(
    state: GameState,
    now: Optional[float] = None,
    rng: Optional[random.Random] = None,
    balance: Balance = BALANCE,
) -> Tuple[GameState, ColliderResult]:
    """One tier-2 or tier-3 collider run at the current collider settings."""
    ok, reason = can_run_collider(state, balance)
    if not ok:
        return state, ColliderResult(reason=reason)
    rng = rng or _rng
    if now is None:
        now = state.last_tick
    cfg = _tier_config(state, balance)
    new_state = clone(state)
    collider = new_state.collider
    store = new_state.store
    result = ColliderResult()

    store.spend(Currency.PQ, cfg.base_cost)
    store.spend(Currency.PL, collider.precision_spend)
    store.spend(Currency.ENERGY, cfg.energy_cost)

    chance = upgrade_chance(state, balance)
    if collider.pity >= pity_threshold(state, balance):
        chance = 1.0
        collider.pity = 0.0
        result.pity_triggered = True
        new_state.stats.total_pity_triggers += 1

    result.success = rng.random() < chance
    if result.success:
        new_state.stats.total_upgrade_successes += 1
        first, second = COLLIDER_PRODUCTS[(collider.tier, collider.mode)]
        particle = first if rng.random() < 0.5 else second
        result.particles[_route(new_state, particle, 1.0)] = 1.0
    else:
        amount = cfg.failure_base_yield
        if collider.mode is ColliderMode.LEPTON:
            amount *= 0.5
        for particle in FAILURE_PRODUCTS[collider.mode]:
            result.particles[_route(new_state, particle, amount)] = amount
        if not result.pity_triggered:
            collider.pity += 1
            result.pity_gained = 1

    if rng.random() < cfg.gluon_drop_chance:
        result.gluon_drop = 1
        new_state.catalysts[Catalyst.GLUON] += 1
    if rng.random() < cfg.photon_drop_chance:
        result.photon_drop = 1
        new_state.catalysts[Catalyst.PHOTON] += 1
    if rng.random() < cfg.debris_drop_chance:
        result.debris_drop = rng.randint(1, 3)
        store.add(Currency.DEBRIS, result.debris_drop)
    if rng.random() < cfg.exotic_event_chance:
        result.exotic_event = _roll_exotic_event(rng, balance)
        _apply_exotic_event(new_state, result.exotic_event, now, balance)
        new_state.stats.total_exotic_events += 1
        logger.debug("exotic event: %s", result.exotic_event.kind.value)

    if collider.matter_mode is Polarity.ANTIMATTER:
        result.energy_gained = cfg.antimatter_base_energy * balance.antimatter.energy_bonus
        store.add(Currency.ENERGY, result.energy_gained)
        new_state.stats.total_energy_produced += result.energy_gained

    new_state.stats.total_collider_runs += 1
    return new_state, result


# ── Boson collider ────────────────────────────────────────────────────


def can_run_boson_collider(state: GameState, balance: Balance = BALANCE) -> Tuple[bool, Optional[str]]:
    cfg = balance.boson_collider
    if state.tier < cfg.required_tier:
        return False, f"Requires E{cfg.required_tier}"
    if not state.unlocks.boson_mode:
        return False, "Boson mode not unlocked"
    if not state.store.has(Currency.PQ, cfg.pq_cost):
        return False, f"Need {cfg.pq_cost:g} Pq"
    if not state.store.has(Currency.PL, cfg.pl_cost):
        return False, f"Need {cfg.pl_cost:g} Pl"
    if not state.store.has(Currency.ENERGY, cfg.energy_cost):
        return False, f"Need {cfg.energy_cost:g} Energy"
    return True, None


def run_boson_collider(
    state: GameState,
    rng: Optional[random.Random] = None,
    balance: Balance = BALANCE,
) -> Tuple[GameState, BosonRunResult]:
    ok, reason = can_run_boson_collider(state, balance)
    if not ok:
        return state, BosonRunResult(reason=reason)
    rng = rng or _rng
    cfg = balance.boson_collider
    new_state = clone(state)
    store = new_state.store
    store.spend_all({Currency.PQ: cfg.pq_cost, Currency.PL: cfg.pl_cost, Currency.ENERGY: cfg.energy_cost})
    result = BosonRunResult()

    if rng.random() < cfg.base_boson_chance:
        result.success = True
        roll = rng.random()
        cumulative = 0.0
        for boson, weight in cfg.weights:
            cumulative += weight
            if roll < cumulative:
                result.boson = boson
                break
        else:
            result.boson = cfg.weights[-1][0]
        new_state.bosons[result.boson] += 1
    else:
        result.photons = rng.randint(*cfg.fallback_photons)
        result.gluons = rng.randint(*cfg.fallback_gluons)
        result.debris = rng.randint(*cfg.fallback_debris)
        new_state.catalysts[Catalyst.PHOTON] += result.photons
        new_state.catalysts[Catalyst.GLUON] += result.gluons
        store.add(Currency.DEBRIS, result.debris)

    new_state.stats.total_collider_runs += 1
    return new_state, result


def unlock_boson_mode(state: GameState, balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    cfg = balance.boson_collider
    if state.unlocks.boson_mode:
        return state, "Already unlocked"
    if state.tier < cfg.required_tier:
        return state, f"Requires E{cfg.required_tier}"
    if not state.forces_unlocked:
        return state, "Forces not unlocked"
    costs = {Currency.PQ: cfg.unlock_pq_cost, Currency.PL: cfg.unlock_pl_cost}
    if not state.store.can_afford(costs):
        return state, "Cannot afford"
    new_state = clone(state)
    new_state.store.spend_all(costs)
    new_state.unlocks.boson_mode = True
    return new_state, None


# ── Tier 3 gate ───────────────────────────────────────────────────────


def tier2_particle_count(state: GameState) -> float:
    return sum(state.matter[m] + state.antimatter[ANTIPARTICLE[m]] for m in TIER2_MATTER)


def can_unlock_tier3(state: GameState, balance: Balance = BALANCE) -> bool:
    return tier2_particle_count(state) >= balance.tier3_particle_gate


def unlock_tier3(state: GameState, balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    """Open the tier-3 collider. The tier-2 particles are only counted, never consumed."""
    if state.unlocks.tier3:
        return state, "Already unlocked"
    if state.tier < balance.collider[3].required_tier:
        return state, f"Requires E{balance.collider[3].required_tier}"
    if not can_unlock_tier3(state, balance):
        return state, f"Need {balance.tier3_particle_gate:g} tier-2 particles"
    new_state = clone(state)
    new_state.unlocks.tier3 = True
    return new_state, None


# ── Settings ──────────────────────────────────────────────────────────


def set_collider_tier(state: GameState, tier: int,
                      balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    if tier not in balance.collider:
        return state, f"no collider tier {tier}"
    new_state = clone(state)
    new_state.collider.tier = tier
    new_state.collider.precision_spend = min(
        new_state.collider.precision_spend, max_precision_spend(new_state, balance)
    )
    return new_state, None


def set_collider_mode(state: GameState, mode: ColliderMode) -> GameState:
    new_state = clone(state)
    new_state.collider.mode = ColliderMode(mode)
    return new_state


def set_matter_mode(state: GameState, matter_mode: Polarity,
                    balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    matter_mode = Polarity(matter_mode)
    if matter_mode is Polarity.ANTIMATTER and state.tier < balance.antimatter.required_tier:
        return state, f"Requires E{balance.antimatter.required_tier}"
    new_state = clone(state)
    new_state.collider.matter_mode = matter_mode
    return new_state, None


def set_precision_spend(state: GameState, amount: float, balance: Balance = BALANCE) -> GameState:
    """Clamp to [0, tier max + precision mastery bonus]."""
    new_state = clone(state)
    new_state.collider.precision_spend = min(max(0.0, float(amount)), max_precision_spend(state, balance))
    return new_state


def set_boson_mode(state: GameState, enabled: bool) -> Tuple[GameState, Optional[str]]:
    if enabled and not state.unlocks.boson_mode:
        return state, "Boson mode not unlocked"
    new_state = clone(state)
    new_state.collider.boson_mode = bool(enabled)
    return new_state, None


# ── Catalyst slots ────────────────────────────────────────────────────


def _slot_attr(catalyst: Catalyst) -> str:
    return "slotted_photons" if catalyst is Catalyst.PHOTON else "slotted_gluons"


def slot_catalyst(state: GameState, catalyst: Catalyst, count: int = 1,
                  balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    """Move catalysts from inventory into collider slots."""
    catalyst = Catalyst(catalyst)
    if count <= 0:
        return state, "Nothing to slot"
    used = state.collider.slotted_photons + state.collider.slotted_gluons
    if used + count > catalyst_slot_capacity(state, balance):
        return state, "No free slots"
    if state.catalysts[catalyst] < count:
        return state, f"Need {count} {catalyst.value}"
    new_state = clone(state)
    new_state.catalysts[catalyst] -= count
    attr = _slot_attr(catalyst)
    setattr(new_state.collider, attr, getattr(new_state.collider, attr) + count)
    return new_state, None


def unslot_catalyst(state: GameState, catalyst: Catalyst, count: int = 1) -> Tuple[GameState, Optional[str]]:
    catalyst = Catalyst(catalyst)
    attr = _slot_attr(catalyst)
    if count <= 0 or getattr(state.collider, attr) < count:
        return state, "Nothing slotted"
    new_state = clone(state)
    setattr(new_state.collider, attr, getattr(new_state.collider, attr) - count)
    new_state.catalysts[catalyst] += count
    return new_state, None
