"""Debris exchange and the persistent debris shop."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from emergence.balance import BALANCE, Balance
from emergence.state import GameState, clone
from emergence.types import BuyMode, Currency, DEBRIS_UPGRADES, UpgradeId
from emergence.upgrades import PurchaseResult, UpgradeCatalog, buy_upgrade


class DebrisTarget(str, Enum):
    PQ = "pq"
    PL = "pl"
    ENERGY = "energy"
    PITY = "pity"


@dataclass
class ExchangeResult:
    success: bool = False
    spent: float = 0.0
    gained: float = 0.0
    reason: Optional[str] = None


def exchange_rate(target: DebrisTarget, balance: Balance = BALANCE) -> float:
    cfg = balance.debris
    return {
        DebrisTarget.PQ: cfg.pq_rate,
        DebrisTarget.PL: cfg.pl_rate,
        DebrisTarget.ENERGY: cfg.energy_rate,
        DebrisTarget.PITY: cfg.pity_rate,
    }[DebrisTarget(target)]


def debris_needed(target: DebrisTarget, amount: float, balance: Balance = BALANCE) -> int:
    return math.ceil(amount / exchange_rate(target, balance))


def exchange_debris(state: GameState, target: DebrisTarget, debris: float,
                    balance: Balance = BALANCE) -> Tuple[GameState, ExchangeResult]:
    target = DebrisTarget(target)
    if debris <= 0:
        return state, ExchangeResult(reason="Nothing to exchange")
    if not state.store.has(Currency.DEBRIS, debris):
        return state, ExchangeResult(reason="Not enough debris")
    gain = debris * exchange_rate(target, balance)
    new_state = clone(state)
    new_state.store.spend(Currency.DEBRIS, debris)
    if target is DebrisTarget.PQ:
        new_state.store.add(Currency.PQ, gain)
        new_state.stats.total_pq_earned += gain
    elif target is DebrisTarget.PL:
        new_state.store.add(Currency.PL, gain)
        new_state.stats.total_pl_earned += gain
    elif target is DebrisTarget.ENERGY:
        new_state.store.add(Currency.ENERGY, gain)
        new_state.stats.total_energy_produced += gain
    else:
        new_state.collider.pity += gain
    return new_state, ExchangeResult(True, spent=debris, gained=gain)


def exchange_all_debris(state: GameState, target: DebrisTarget,
                        balance: Balance = BALANCE) -> Tuple[GameState, ExchangeResult]:
    return exchange_debris(state, target, math.floor(state.store.debris), balance)


def buy_debris_upgrade(
    state: GameState,
    upgrade_id: UpgradeId,
    mode: Optional[BuyMode] = None,
    catalog: Optional[UpgradeCatalog] = None,
    balance: Balance = BALANCE,
) -> Tuple[GameState, PurchaseResult]:
    upgrade_id = UpgradeId(upgrade_id)
    if upgrade_id not in DEBRIS_UPGRADES:
        return state, PurchaseResult(False, reason=f"{upgrade_id.value} is not sold for debris")
    return buy_upgrade(state, upgrade_id, mode, catalog, balance)
