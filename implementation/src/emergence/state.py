"""The game-state aggregate.

``GameState`` is a plain record. Engine functions never mutate the instance
they are handed; they ``clone`` it, change the copy and return the copy, so a
caller holding the old reference keeps seeing the old values.
"""
from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from emergence.balance import BALANCE
from emergence.elements import load_elements
from emergence.store import ResourceStore
from emergence.types import (
    Antimatter,
    AutomationModuleId,
    Boson,
    BuyMode,
    Catalyst,
    ColliderMode,
    Composite,
    DEBRIS_UPGRADES,
    Harvester,
    Matter,
    Polarity,
    RUN_UPGRADES,
    UpgradeId,
)


def now_ms() -> float:
    """Wall clock in milliseconds. Only hosts call this; the engine takes ``now``."""
    return time.time() * 1000.0


# ── Nested records ────────────────────────────────────────────────────


@dataclass
class HarvesterState:
    polarity: Polarity = Polarity.MATTER
    cooldown: float = 0.0  # ms until the polarity may be switched again


@dataclass
class RunUnlocks:
    """One-way unlocks bought during a run; cleared by emerge."""
    tier3: bool = False
    gluon_catalyst: bool = False
    boson_mode: bool = False


@dataclass
class ColliderState:
    tier: int = 2
    mode: ColliderMode = ColliderMode.QUARK
    matter_mode: Polarity = Polarity.MATTER
    precision_spend: float = 0.0
    pity: float = 0.0
    slotted_photons: int = 0
    slotted_gluons: int = 0
    boson_mode: bool = False
    cooldown: float = 0.0


# Automation settings: one closed record per module.

@dataclass
class HarvesterAutoSettings:
    buy_quark_rate: bool = True
    buy_quark_efficiency: bool = True
    buy_lepton_rate: bool = True
    buy_precision: bool = True


@dataclass
class ColliderAutoSettings:
    pq_reserve: float = 0.0
    pl_reserve: float = 0.0


@dataclass
class PolarityAutoSettings:
    # Desired antimatter:matter ratio for each harvester's output.
    target_ratio: float = 1.0


@dataclass
class AnnihilateAutoSettings:
    keep_matter: float = 0.0


@dataclass
class AssemblyAutoSettings:
    batch: int = 10
    # None alternates toward whichever composite is lower.
    composite: Optional[Composite] = None


@dataclass
class AtomAutoSettings:
    batch: int = 10


@dataclass
class FusionAutoSettings:
    max_z: int = 82


@dataclass
class DecayAutoSettings:
    max_z: int = 118


AutomationSettings = Union[
    HarvesterAutoSettings,
    ColliderAutoSettings,
    PolarityAutoSettings,
    AnnihilateAutoSettings,
    AssemblyAutoSettings,
    AtomAutoSettings,
    FusionAutoSettings,
    DecayAutoSettings,
]

SETTINGS_TYPES = {
    AutomationModuleId.HARVESTER: HarvesterAutoSettings,
    AutomationModuleId.COLLIDER: ColliderAutoSettings,
    AutomationModuleId.POLARITY: PolarityAutoSettings,
    AutomationModuleId.ANNIHILATE: AnnihilateAutoSettings,
    AutomationModuleId.ASSEMBLY: AssemblyAutoSettings,
    AutomationModuleId.ATOM: AtomAutoSettings,
    AutomationModuleId.FUSION: FusionAutoSettings,
    AutomationModuleId.DECAY: DecayAutoSettings,
}


@dataclass
class AutomationModule:
    module_id: AutomationModuleId
    unlocked: bool = False
    enabled: bool = False
    level: int = 0
    settings: AutomationSettings = None  # type: ignore[assignment]
    last_run: float = 0.0

    def __post_init__(self):
        if self.settings is None:
            self.settings = SETTINGS_TYPES[self.module_id]()


@dataclass
class AutomationState:
    chips: float = 0.0
    modules: Dict[AutomationModuleId, AutomationModule] = field(
        default_factory=lambda: {mid: AutomationModule(mid) for mid in AutomationModuleId}
    )


@dataclass
class Element:
    z: int
    symbol: str
    name: str
    unlocked: bool = False
    fusion_progress: float = 0.0
    fusion_start: Optional[float] = None


@dataclass
class ActiveFusion:
    z: int
    start: float


@dataclass
class LeadSample:
    crafted: bool = False
    durability: float = 0.0
    max_durability: float = BALANCE.decay.lead_sample_durability


@dataclass
class Overdrive:
    active: bool = False
    end: float = 0.0


@dataclass
class TempBuffs:
    collider_overdrive: Overdrive = field(default_factory=Overdrive)


@dataclass
class Stats:
    total_pq_earned: float = 0.0
    total_pl_earned: float = 0.0
    total_energy_produced: float = 0.0
    total_collider_runs: int = 0
    total_upgrade_successes: int = 0
    total_pity_triggers: int = 0
    total_exotic_events: int = 0
    total_emerges: int = 0
    total_annihilations: int = 0
    total_protons_built: int = 0
    total_neutrons_built: int = 0
    total_atoms_built: int = 0
    elements_unlocked: int = 0
    play_time: float = 0.0
    session_start: float = 0.0


# ── Aggregate ─────────────────────────────────────────────────────────


def fresh_matter() -> Dict[Matter, float]:
    return {m: 0.0 for m in Matter}


def fresh_antimatter() -> Dict[Antimatter, float]:
    return {a: 0.0 for a in Antimatter}


def fresh_catalysts() -> Dict[Catalyst, float]:
    return {c: 0.0 for c in Catalyst}


def fresh_composites() -> Dict[Composite, float]:
    return {c: 0.0 for c in Composite}


def fresh_bosons() -> Dict[Boson, float]:
    return {b: 0.0 for b in Boson}


def fresh_run_upgrades() -> Dict[UpgradeId, int]:
    return {uid: 0 for uid in RUN_UPGRADES}


def fresh_debris_upgrades() -> Dict[UpgradeId, int]:
    return {uid: 0 for uid in DEBRIS_UPGRADES}


def fresh_harvesters() -> Dict[Harvester, HarvesterState]:
    return {h: HarvesterState() for h in Harvester}


def fresh_elements() -> List[Element]:
    return [Element(z=info.z, symbol=info.symbol, name=info.name) for info in load_elements()]


@dataclass
class GameState:
    tier: int = 0
    highest_tier: int = 0
    store: ResourceStore = field(default_factory=ResourceStore)

    matter: Dict[Matter, float] = field(default_factory=fresh_matter)
    antimatter: Dict[Antimatter, float] = field(default_factory=fresh_antimatter)
    catalysts: Dict[Catalyst, float] = field(default_factory=fresh_catalysts)
    composites: Dict[Composite, float] = field(default_factory=fresh_composites)
    bosons: Dict[Boson, float] = field(default_factory=fresh_bosons)

    upgrades: Dict[UpgradeId, int] = field(default_factory=fresh_run_upgrades)
    unlocks: RunUnlocks = field(default_factory=RunUnlocks)
    debris_upgrades: Dict[UpgradeId, int] = field(default_factory=fresh_debris_upgrades)

    harvesters: Dict[Harvester, HarvesterState] = field(default_factory=fresh_harvesters)
    collider: ColliderState = field(default_factory=ColliderState)
    automation: AutomationState = field(default_factory=AutomationState)

    elements: List[Element] = field(default_factory=fresh_elements)
    active_fusion: Optional[ActiveFusion] = None
    lead_sample: LeadSample = field(default_factory=LeadSample)

    temp_buffs: TempBuffs = field(default_factory=TempBuffs)
    stats: Stats = field(default_factory=Stats)

    last_tick: float = 0.0
    last_save: float = 0.0
    forces_unlocked: bool = False
    periodic_table_unlocked: bool = False
    buy_mode: BuyMode = BuyMode.X1

    def level(self, upgrade: UpgradeId) -> int:
        if upgrade in self.debris_upgrades:
            return self.debris_upgrades[upgrade]
        return self.upgrades.get(upgrade, 0)

    def element(self, z: int) -> Optional[Element]:
        if 1 <= z <= len(self.elements):
            return self.elements[z - 1]
        return None

    def elements_unlocked(self) -> int:
        return sum(1 for e in self.elements if e.unlocked)


def create_initial_state(now: Optional[float] = None) -> GameState:
    if now is None:
        now = now_ms()
    state = GameState(last_tick=now, last_save=now)
    state.stats.session_start = now
    return state


def clone(state: GameState) -> GameState:
    return copy.deepcopy(state)


def is_max_tier(state: GameState) -> bool:
    return state.tier >= BALANCE.max_tier
