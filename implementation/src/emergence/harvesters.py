"""Harvester output: polarity switching and the production step shared by the
live tick and the offline integrator."""
from __future__ import annotations

from typing import Optional, Tuple

from emergence.balance import BALANCE, Balance
from emergence.production import lepton_e_rate, lepton_nu_rate, pl_factor, pq_factor, quark_d_rate, quark_u_rate
from emergence.state import GameState, clone
from emergence.types import ANTIPARTICLE, Currency, Harvester, Matter, Polarity


def effective_polarity(state: GameState, harvester: Harvester, balance: Balance = BALANCE) -> Polarity:
    """Antimatter output only applies once antimatter is unlocked."""
    if state.tier < balance.antimatter.required_tier:
        return Polarity.MATTER
    return state.harvesters[harvester].polarity


def toggle_polarity(state: GameState, harvester: Harvester,
                    balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    harvester = Harvester(harvester)
    cfg = balance.antimatter
    if state.tier < cfg.required_tier:
        return state, f"Requires E{cfg.required_tier}"
    if state.harvesters[harvester].cooldown > 0:
        return state, "Polarity switch cooling down"
    new_state = clone(state)
    h = new_state.harvesters[harvester]
    h.polarity = Polarity.ANTIMATTER if h.polarity is Polarity.MATTER else Polarity.MATTER
    h.cooldown = cfg.polarity_switch_cooldown_ms
    return new_state, None


def _credit(state: GameState, particle: Matter, amount: float, polarity: Polarity) -> None:
    if polarity is Polarity.ANTIMATTER:
        state.antimatter[ANTIPARTICLE[particle]] += amount
    else:
        state.matter[particle] += amount


def produce(state: GameState, seconds: float, balance: Balance = BALANCE) -> None:
    """Run both harvesters for ``seconds``. Mutates ``state`` in place.

    Quarks go first, so the lepton step already sees this step's Pq when it
    evaluates its cross synergy.
    """
    if seconds <= 0:
        return
    if state.tier >= 0:
        u_rate = quark_u_rate(state, balance)
        d_rate = quark_d_rate(state, balance)
        polarity = effective_polarity(state, Harvester.QUARK, balance)
        _credit(state, Matter.U, u_rate * seconds, polarity)
        _credit(state, Matter.D, d_rate * seconds, polarity)
        pq_gain = (u_rate + d_rate) * pq_factor(state, balance) * seconds
        state.store.add(Currency.PQ, pq_gain)
        state.stats.total_pq_earned += pq_gain
    if state.tier >= 1:
        e_rate = lepton_e_rate(state, balance)
        nu_rate = lepton_nu_rate(state, balance)
        polarity = effective_polarity(state, Harvester.LEPTON, balance)
        _credit(state, Matter.ELECTRON, e_rate * seconds, polarity)
        _credit(state, Matter.NU_E, nu_rate * seconds, polarity)
        pl_gain = (e_rate + nu_rate) * pl_factor(state, balance) * seconds
        state.store.add(Currency.PL, pl_gain)
        state.stats.total_pl_earned += pl_gain
