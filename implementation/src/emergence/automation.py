"""Automation: chips, modules, and the runner that fires enabled modules.

A module issues the same transition functions the player would; it has no
privileged access to state. Each enabled module fires at most once per
``module_interval`` of simulation time.
"""
from __future__ import annotations

import dataclasses
import logging
import math
import random
from typing import Callable, Dict, List, Optional, Tuple

from emergence import annihilation, assembly, atoms, collider, harvesters
from emergence.balance import BALANCE, Balance
from emergence.state import AutomationModule, GameState, clone
from emergence.types import (
    ANTIPARTICLE,
    AutomationModuleId,
    BuyMode,
    Composite,
    Currency,
    Harvester,
    Matter,
    Polarity,
    UpgradeId,
)
from emergence.upgrades import UpgradeCatalog, buy_upgrade, default_catalog

logger = logging.getLogger(__name__)


def module_cost(module_id: AutomationModuleId, level: int, balance: Balance = BALANCE) -> float:
    cfg = balance.automation.modules[module_id]
    return float(math.ceil(cfg.base_cost * cfg.cost_scale ** level))


# ── Chips and module management ───────────────────────────────────────


def max_chips_mintable(state: GameState, balance: Balance = BALANCE) -> int:
    return math.floor(state.store.energy / balance.automation.chip_energy_cost)


def mint_chips(state: GameState, count: int = 1, balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    cfg = balance.automation
    if state.tier < cfg.required_tier:
        return state, f"Requires E{cfg.required_tier}"
    if count <= 0:
        return state, "Nothing to mint"
    cost = cfg.chip_energy_cost * count
    if not state.store.has(Currency.ENERGY, cost):
        return state, f"Need {cost:g} Energy"
    new_state = clone(state)
    new_state.store.spend(Currency.ENERGY, cost)
    new_state.automation.chips += count
    return new_state, None


def unlock_module(state: GameState, module_id: AutomationModuleId,
                  balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    module_id = AutomationModuleId(module_id)
    cfg = balance.automation.modules[module_id]
    if state.tier < cfg.required_tier:
        return state, f"Requires E{cfg.required_tier}"
    if state.automation.modules[module_id].unlocked:
        return state, "Already unlocked"
    cost = module_cost(module_id, 0, balance)
    if state.automation.chips < cost:
        return state, f"Need {cost:g} chips"
    new_state = clone(state)
    new_state.automation.chips -= cost
    module = new_state.automation.modules[module_id]
    module.unlocked = True
    module.level = 1
    return new_state, None


def upgrade_module(state: GameState, module_id: AutomationModuleId,
                   balance: Balance = BALANCE) -> Tuple[GameState, Optional[str]]:
    module_id = AutomationModuleId(module_id)
    module = state.automation.modules[module_id]
    if not module.unlocked:
        return state, "Module locked"
    cost = module_cost(module_id, module.level, balance)
    if state.automation.chips < cost:
        return state, f"Need {cost:g} chips"
    new_state = clone(state)
    new_state.automation.chips -= cost
    new_state.automation.modules[module_id].level += 1
    return new_state, None


def toggle_module(state: GameState, module_id: AutomationModuleId) -> Tuple[GameState, Optional[str]]:
    module_id = AutomationModuleId(module_id)
    if not state.automation.modules[module_id].unlocked:
        return state, "Module locked"
    new_state = clone(state)
    module = new_state.automation.modules[module_id]
    module.enabled = not module.enabled
    return new_state, None


def update_settings(state: GameState, module_id: AutomationModuleId, **changes) -> GameState:
    """Replace fields of the module's settings record.

    Unknown field names raise ``TypeError``; the settings set is closed.
    """
    module_id = AutomationModuleId(module_id)
    new_state = clone(state)
    module = new_state.automation.modules[module_id]
    module.settings = dataclasses.replace(module.settings, **changes)
    return new_state


# ── Runner ────────────────────────────────────────────────────────────


def module_interval(module: AutomationModule, state: GameState, balance: Balance = BALANCE) -> float:
    cfg = balance.automation
    interval = max(cfg.min_interval_ms, cfg.base_interval_ms / max(1, module.level))
    if module.module_id is AutomationModuleId.COLLIDER and state.temp_buffs.collider_overdrive.active:
        interval /= cfg.overdrive_collider_rate
    return interval


def _auto_harvester(state, settings, now, rng, balance, catalog):
    wanted = {
        UpgradeId.QUARK_RATE: settings.buy_quark_rate,
        UpgradeId.QUARK_EFFICIENCY: settings.buy_quark_efficiency,
        UpgradeId.LEPTON_RATE: settings.buy_lepton_rate,
        UpgradeId.PRECISION: settings.buy_precision,
    }
    for upgrade_id, enabled in wanted.items():
        if enabled:
            state, _ = buy_upgrade(state, upgrade_id, BuyMode.X1, catalog, balance)
    return state


def _auto_collider(state, settings, now, rng, balance, catalog):
    if state.collider.boson_mode:
        cfg = balance.boson_collider
        if state.store.pq - cfg.pq_cost < settings.pq_reserve or state.store.pl - cfg.pl_cost < settings.pl_reserve:
            return state
        state, _ = collider.run_boson_collider(state, rng, balance)
        return state
    tier_cfg = balance.collider.get(state.collider.tier)
    if tier_cfg is None:
        return state
    if state.store.pq - tier_cfg.base_cost < settings.pq_reserve:
        return state
    if state.store.pl - state.collider.precision_spend < settings.pl_reserve:
        return state
    state, _ = collider.run_collider(state, now, rng, balance)
    return state


def _polarity_totals(state: GameState, harvester: Harvester) -> Tuple[float, float]:
    if harvester is Harvester.QUARK:
        particles = (Matter.U, Matter.D)
    else:
        particles = (Matter.ELECTRON, Matter.NU_E)
    matter = sum(state.matter[p] for p in particles)
    anti = sum(state.antimatter[ANTIPARTICLE[p]] for p in particles)
    return matter, anti


def _auto_polarity(state, settings, now, rng, balance, catalog):
    for harvester in Harvester:
        matter, anti = _polarity_totals(state, harvester)
        behind = anti < settings.target_ratio * matter
        polarity = state.harvesters[harvester].polarity
        if (behind and polarity is Polarity.MATTER) or (not behind and polarity is Polarity.ANTIMATTER):
            state, _ = harvesters.toggle_polarity(state, harvester, balance)
    return state


def _auto_annihilate(state, settings, now, rng, balance, catalog):
    for particle in annihilation.yield_table(balance):
        spare = math.floor(state.matter[particle] - settings.keep_matter)
        count = min(spare, annihilation.pairs_available(state, particle))
        if count > 0:
            state, _ = annihilation.annihilate(state, particle, count, rng, balance)
    return state


def _auto_assembly(state, settings, now, rng, balance, catalog):
    composite = settings.composite
    if composite is None:
        protons = state.composites[Composite.PROTON]
        neutrons = state.composites[Composite.NEUTRON]
        composite = Composite.PROTON if protons <= neutrons else Composite.NEUTRON
    count = min(settings.batch, assembly.max_buildable(state, composite, balance))
    if count > 0:
        state, _ = assembly.build(state, composite, count, rng, balance)
    return state


def _auto_atom(state, settings, now, rng, balance, catalog):
    count = min(settings.batch, atoms.max_atoms_buildable(state, balance))
    if count > 0:
        state, _ = atoms.build_atoms(state, count, balance)
    return state


def _auto_fusion(state, settings, now, rng, balance, catalog):
    if state.active_fusion is not None:
        return state
    limit = min(settings.max_z, balance.fusion.max_z)
    target = next((e.z for e in state.elements if not e.unlocked and e.z <= limit), None)
    if target is not None:
        state, _ = atoms.start_fusion(state, target, now, balance)
    return state


def _auto_decay(state, settings, now, rng, balance, catalog):
    if not state.lead_sample.crafted or state.lead_sample.durability <= 0:
        return state
    target = next(
        (e.z for e in state.elements if not e.unlocked and balance.fusion.max_z < e.z <= settings.max_z),
        None,
    )
    if target is None:
        return state
    sources = [e.z for e in state.elements if e.unlocked]
    if not sources:
        return state
    source = min(sources, key=lambda z: abs(z - target))
    state, _ = atoms.start_decay(state, source, target, balance)
    return state


_ACTIONS: Dict[AutomationModuleId, Callable] = {
    AutomationModuleId.HARVESTER: _auto_harvester,
    AutomationModuleId.COLLIDER: _auto_collider,
    AutomationModuleId.POLARITY: _auto_polarity,
    AutomationModuleId.ANNIHILATE: _auto_annihilate,
    AutomationModuleId.ASSEMBLY: _auto_assembly,
    AutomationModuleId.ATOM: _auto_atom,
    AutomationModuleId.FUSION: _auto_fusion,
    AutomationModuleId.DECAY: _auto_decay,
}


def run_automation(
    state: GameState,
    now: float,
    rng: Optional[random.Random] = None,
    balance: Balance = BALANCE,
    catalog: Optional[UpgradeCatalog] = None,
) -> Tuple[GameState, List[AutomationModuleId]]:
    """Fire every enabled module whose interval has elapsed. Returns the modules that fired."""
    due = [
        module.module_id
        for module in state.automation.modules.values()
        if module.unlocked and module.enabled and now - module.last_run >= module_interval(module, state, balance)
    ]
    if not due:
        return state, []
    catalog = catalog or default_catalog()
    new_state = clone(state)
    for module_id in due:
        new_state.automation.modules[module_id].last_run = now
        settings = new_state.automation.modules[module_id].settings
        new_state = _ACTIONS[module_id](new_state, settings, now, rng, balance, catalog)
        logger.debug("automation fired: %s", module_id.value)
    return new_state, due
