"""Instantaneous production rates and multipliers.

Every function here is a pure ``(state, balance) -> number``. The live tick
and the offline integrator both call them, so they must stay side-effect
free.
"""
from __future__ import annotations

from typing import Sequence

from emergence.balance import BALANCE, Balance, SynergyConfig
from emergence.state import GameState
from emergence.types import Boson, UpgradeId


def cross_synergy(value: float, thresholds: Sequence[float], cfg: SynergyConfig) -> float:
    """Multiplier from the other currency: +step per threshold reached, summed bonus capped."""
    reached = sum(1 for t in thresholds if value >= t)
    return 1.0 + min(cfg.cap, reached * cfg.step)


# ── Debris shop effects ───────────────────────────────────────────────


def debris_synergy_bonus(state: GameState, balance: Balance = BALANCE) -> float:
    level = state.level(UpgradeId.DEBRIS_SYNERGY)
    if level <= 0:
        return 0.0
    cfg = balance.debris
    return min(cfg.synergy_cap, state.store.debris * cfg.synergy_per_debris * level)


def lepton_boost_multiplier(state: GameState, balance: Balance = BALANCE) -> float:
    return 1.0 + state.level(UpgradeId.LEPTON_BOOST) * balance.debris.lepton_boost_bonus


def extra_precision_cap(state: GameState, balance: Balance = BALANCE) -> float:
    return state.level(UpgradeId.PRECISION_MASTERY) * balance.debris.precision_mastery_cap


def energy_amplifier_multiplier(state: GameState, balance: Balance = BALANCE) -> float:
    return 1.0 + state.level(UpgradeId.ENERGY_AMPLIFIER) * balance.debris.energy_amplifier_bonus


# ── Quarks ────────────────────────────────────────────────────────────


def _quark_rate_mult(state: GameState, balance: Balance) -> float:
    return 1.0 + state.level(UpgradeId.QUARK_RATE) * balance.quarks.rate_bonus


def quark_u_rate(state: GameState, balance: Balance = BALANCE) -> float:
    return balance.quarks.base_u_rate * _quark_rate_mult(state, balance)


def quark_d_rate(state: GameState, balance: Balance = BALANCE) -> float:
    return balance.quarks.base_d_rate * _quark_rate_mult(state, balance)


def pq_factor(state: GameState, balance: Balance = BALANCE) -> float:
    cfg = balance.quarks
    efficiency = 1.0 + state.level(UpgradeId.QUARK_EFFICIENCY) * cfg.efficiency_bonus
    synergy = cross_synergy(state.store.pl, balance.synergy.pq_from_pl, balance.synergy)
    return cfg.base_pq_factor * efficiency * synergy * (1.0 + debris_synergy_bonus(state, balance))


# ── Leptons ───────────────────────────────────────────────────────────


def _lepton_rate_mult(state: GameState, balance: Balance) -> float:
    rate = 1.0 + state.level(UpgradeId.LEPTON_RATE) * balance.leptons.rate_bonus
    return rate * lepton_boost_multiplier(state, balance)


def lepton_e_rate(state: GameState, balance: Balance = BALANCE) -> float:
    return balance.leptons.base_e_rate * _lepton_rate_mult(state, balance)


def lepton_nu_rate(state: GameState, balance: Balance = BALANCE) -> float:
    return balance.leptons.base_nu_rate * _lepton_rate_mult(state, balance)


def pl_factor(state: GameState, balance: Balance = BALANCE) -> float:
    # The lepton boost feeds both the rates above and the currency factor.
    synergy = cross_synergy(state.store.pq, balance.synergy.pl_from_pq, balance.synergy)
    return balance.leptons.base_pl_factor * synergy * lepton_boost_multiplier(state, balance)


# ── Derived stats ─────────────────────────────────────────────────────


def precision_bonus(state: GameState, balance: Balance = BALANCE) -> float:
    """Passive collider chance from the Precision upgrade."""
    return state.level(UpgradeId.PRECISION) * balance.leptons.precision_bonus


def stability(state: GameState, balance: Balance = BALANCE) -> float:
    cfg = balance.assembly
    value = (
        cfg.base_stability
        + state.level(UpgradeId.STABILITY) * cfg.stability_bonus
        + state.bosons[Boson.Z0] * balance.forces.z_boson_stability_bonus
    )
    return min(cfg.max_stability, value)


def electron_cost(state: GameState, balance: Balance = BALANCE) -> float:
    cfg = balance.atoms
    cost = cfg.base_electron_cost - state.level(UpgradeId.ELECTRON_EFFICIENCY) * cfg.electron_efficiency_bonus
    return max(cost, cfg.min_electron_cost)


def catalyst_slot_capacity(state: GameState, balance: Balance = BALANCE) -> int:
    return min(state.level(UpgradeId.CATALYST_SLOTS), balance.catalyst_slots.max_slots)


def max_precision_spend(state: GameState, balance: Balance = BALANCE) -> float:
    tier_cfg = balance.collider.get(state.collider.tier)
    if tier_cfg is None:
        return 0.0
    return tier_cfg.max_precision_spend + extra_precision_cap(state, balance)
