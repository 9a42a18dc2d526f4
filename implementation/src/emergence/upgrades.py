"""Upgrade catalog: definitions, cost curves and purchasing.

Definitions come from ``upgrade_data.json`` next to this module. Levels are
not stored on the definitions; they live in ``GameState.upgrades`` (run-local)
or ``GameState.debris_upgrades`` (persistent), chosen by the ``persistent``
flag of each entry.

Cost of buying level ``n -> n + 1``: ``ceil(base_cost * cost_scale ** n)``.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from emergence.balance import BALANCE, Balance
from emergence.state import GameState, clone
from emergence.types import BuyMode, Currency, DEBRIS_UPGRADES, UpgradeId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpgradeType:
    upgrade_id: UpgradeId
    name: str
    description: str
    base_cost: float
    cost_scale: float
    currency: Currency
    required_tier: int = 0
    max_level: Optional[int] = None
    persistent: bool = False


@dataclass
class PurchaseResult:
    success: bool
    levels: int = 0
    cost: float = 0.0
    reason: Optional[str] = None


class UpgradeCatalog:
    """Loaded upgrade definitions plus the cost math over them."""

    def __init__(self, upgrades: Optional[List[UpgradeType]] = None) -> None:
        self.upgrades: Dict[UpgradeId, UpgradeType] = {u.upgrade_id: u for u in upgrades or []}

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "UpgradeCatalog":
        if path is None:
            path = Path(__file__).resolve().parent / "upgrade_data.json"
        raw = json.loads(path.read_text(encoding="utf-8"))
        items = []
        for entry in raw.get("upgrades", []):
            upgrade = UpgradeType(
                upgrade_id=UpgradeId(entry["id"]),
                name=entry["name"],
                description=entry.get("description", ""),
                base_cost=float(entry["base_cost"]),
                cost_scale=float(entry["cost_scale"]),
                currency=Currency(entry["currency"]),
                required_tier=int(entry.get("required_tier", 0)),
                max_level=entry.get("max_level"),
                persistent=bool(entry.get("persistent", False)),
            )
            if upgrade.persistent != (upgrade.upgrade_id in DEBRIS_UPGRADES):
                raise ValueError(f"upgrade '{upgrade.upgrade_id.value}' has the wrong persistent flag")
            items.append(upgrade)
        logger.debug("loaded %d upgrade definitions from %s", len(items), path)
        return cls(items)

    def __getitem__(self, upgrade_id: UpgradeId) -> UpgradeType:
        return self.upgrades[upgrade_id]

    def __iter__(self):
        return iter(self.upgrades.values())

    def level_cost(self, upgrade_id: UpgradeId, level: int) -> float:
        u = self.upgrades[upgrade_id]
        return float(math.ceil(u.base_cost * u.cost_scale ** level))

    def bulk_cost(self, upgrade_id: UpgradeId, current_level: int, count: int) -> float:
        return sum(self.level_cost(upgrade_id, current_level + i) for i in range(count))

    def max_buyable(self, state: GameState, upgrade_id: UpgradeId, balance: Balance = BALANCE) -> int:
        """Levels affordable right now, stopping at max level and the bulk iteration cap."""
        u = self.upgrades[upgrade_id]
        level = state.level(upgrade_id)
        funds = state.store.get(u.currency)
        count = 0
        total = 0.0
        while count < balance.upgrades.max_bulk_iterations:
            if u.max_level is not None and level + count >= u.max_level:
                break
            next_cost = self.level_cost(upgrade_id, level + count)
            if total + next_cost > funds:
                break
            total += next_cost
            count += 1
        return count

    def buy_count(self, state: GameState, upgrade_id: UpgradeId, mode: Optional[BuyMode] = None,
                  balance: Balance = BALANCE) -> int:
        mode = mode or state.buy_mode
        if mode is BuyMode.X10:
            return 10
        if mode is BuyMode.MAX:
            return self.max_buyable(state, upgrade_id, balance)
        return 1

    def check_purchase(self, state: GameState, upgrade_id: UpgradeId, count: int) -> Tuple[bool, Optional[str]]:
        u = self.upgrades[upgrade_id]
        if state.tier < u.required_tier:
            return False, f"Requires E{u.required_tier}"
        if count <= 0:
            return False, "Cannot afford"
        level = state.level(upgrade_id)
        if u.max_level is not None and level + count > u.max_level:
            return False, "Max level reached"
        if not state.store.has(u.currency, self.bulk_cost(upgrade_id, level, count)):
            return False, "Cannot afford"
        return True, None


@lru_cache(maxsize=1)
def default_catalog() -> UpgradeCatalog:
    return UpgradeCatalog.load()


def buy_upgrade(
    state: GameState,
    upgrade_id: UpgradeId,
    mode: Optional[BuyMode] = None,
    catalog: Optional[UpgradeCatalog] = None,
    balance: Balance = BALANCE,
) -> Tuple[GameState, PurchaseResult]:
    """Buy one, ten or as many levels as affordable, depending on ``mode``.

    Bulk purchases are all-or-nothing. On failure the input state is returned.
    """
    catalog = catalog or default_catalog()
    count = catalog.buy_count(state, upgrade_id, mode, balance)
    ok, reason = catalog.check_purchase(state, upgrade_id, count)
    if not ok:
        return state, PurchaseResult(False, reason=reason)

    u = catalog[upgrade_id]
    level = state.level(upgrade_id)
    cost = catalog.bulk_cost(upgrade_id, level, count)
    new_state = clone(state)
    new_state.store.spend(u.currency, cost)
    levels = new_state.debris_upgrades if u.persistent else new_state.upgrades
    levels[upgrade_id] = level + count
    return new_state, PurchaseResult(True, levels=count, cost=cost)


def buy_gluon_catalyst(state: GameState, balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    """One-off run unlock: assembly keeps some gluons."""
    cfg = balance.assembly
    if state.tier < cfg.required_tier:
        return state, f"Requires E{cfg.required_tier}"
    if state.unlocks.gluon_catalyst:
        return state, "Already unlocked"
    if not state.store.has(Currency.PL, cfg.gluon_catalyst_pl_cost):
        return state, "Cannot afford"
    new_state = clone(state)
    new_state.store.spend(Currency.PL, cfg.gluon_catalyst_pl_cost)
    new_state.unlocks.gluon_catalyst = True
    return new_state, None


def set_buy_mode(state: GameState, mode: BuyMode) -> GameState:
    new_state = clone(state)
    new_state.buy_mode = BuyMode(mode)
    return new_state
