"""Central balance configuration.

Every tunable number of the simulation lives here. Upgrade cost curves are
kept with the upgrade definitions in ``upgrade_data.json``; everything else
(rates, chances, thresholds, recipes) is below.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from emergence.types import AutomationModuleId, Boson


@dataclass(frozen=True)
class LoopConfig:
    tick_rate: float = 20.0          # ticks per second
    render_rate: float = 10.0        # render hook calls per second
    autosave_interval_ms: float = 15000.0
    offline_efficiency: float = 0.6
    offline_cap_hours: float = 8.0
    offline_min_ms: float = 1000.0

    @property
    def tick_interval_ms(self) -> float:
        return 1000.0 / self.tick_rate

    @property
    def render_interval_ms(self) -> float:
        return 1000.0 / self.render_rate

    @property
    def offline_cap_ms(self) -> float:
        return self.offline_cap_hours * 60.0 * 60.0 * 1000.0


@dataclass(frozen=True)
class QuarkHarvesterConfig:
    base_u_rate: float = 1.0
    base_d_rate: float = 1.0
    base_pq_factor: float = 1.0
    rate_bonus: float = 0.25          # per quark-rate level
    efficiency_bonus: float = 0.10    # per quark-efficiency level


@dataclass(frozen=True)
class LeptonHarvesterConfig:
    base_e_rate: float = 0.15
    base_nu_rate: float = 0.15
    base_pl_factor: float = 1.0
    rate_bonus: float = 0.25
    precision_bonus: float = 0.01     # passive collider chance per precision level


@dataclass(frozen=True)
class SynergyConfig:
    step: float = 0.05
    cap: float = 0.20
    pq_from_pl: Tuple[float, ...] = (100.0, 500.0, 2000.0, 10000.0)
    pl_from_pq: Tuple[float, ...] = (1000.0, 5000.0, 25000.0, 100000.0)


@dataclass(frozen=True)
class ColliderTierConfig:
    required_tier: int
    base_cost: float
    energy_cost: float
    max_precision_spend: float
    base_upgrade_chance: float
    precision_bonus_per_pl: float
    gluon_drop_chance: float
    photon_drop_chance: float
    debris_drop_chance: float
    exotic_event_chance: float
    failure_base_yield: float
    antimatter_base_energy: float
    # None -> the threshold is derived from precision spend (tier 2 rule).
    fixed_pity_threshold: float | None = None


@dataclass(frozen=True)
class PityConfig:
    base_threshold: float = 20.0
    reduction_per_pl: float = 0.5
    guaranteed_sentinel: float = 100.0


@dataclass(frozen=True)
class CatalystSlotConfig:
    photon_boost: float = 0.02
    gluon_boost: float = 0.03
    max_slots: int = 5


@dataclass(frozen=True)
class AntimatterConfig:
    required_tier: int = 4
    polarity_switch_cooldown_ms: float = 10000.0
    collider_chance_penalty: float = -0.02
    energy_bonus: float = 2.0


@dataclass(frozen=True)
class ExoticEventConfig:
    guaranteed_upgrade_weight: float = 0.40
    catalyst_jackpot_weight: float = 0.35
    overdrive_weight: float = 0.25
    overdrive_multiplier: float = 2.0
    overdrive_duration_ms: float = 30000.0
    jackpot_photons: Tuple[int, int] = (5, 10)
    jackpot_gluons: Tuple[int, int] = (3, 6)


@dataclass(frozen=True)
class BosonColliderConfig:
    required_tier: int = 6
    pq_cost: float = 5000.0
    pl_cost: float = 200.0
    energy_cost: float = 50.0
    base_boson_chance: float = 0.20
    # Cumulative order matters: W+, W-, Z0, higgs.
    weights: Tuple[Tuple[Boson, float], ...] = (
        (Boson.W_PLUS, 0.30),
        (Boson.W_MINUS, 0.30),
        (Boson.Z0, 0.25),
        (Boson.HIGGS, 0.15),
    )
    fallback_photons: Tuple[int, int] = (2, 4)
    fallback_gluons: Tuple[int, int] = (1, 2)
    fallback_debris: Tuple[int, int] = (3, 7)
    unlock_pq_cost: float = 10000.0
    unlock_pl_cost: float = 5000.0


@dataclass(frozen=True)
class AnnihilationYield:
    energy: float
    photons: float
    gluon_chance: float = 0.0


@dataclass(frozen=True)
class AnnihilationConfig:
    required_tier: int = 4
    lepton: AnnihilationYield = AnnihilationYield(1.0, 1.0)
    light_quark: AnnihilationYield = AnnihilationYield(0.5, 0.5)
    tier2: AnnihilationYield = AnnihilationYield(2.0, 1.5, 0.15)
    tier3: AnnihilationYield = AnnihilationYield(5.0, 3.0, 0.25)


@dataclass(frozen=True)
class Recipe:
    u: int
    d: int
    gluons: int


@dataclass(frozen=True)
class AssemblyConfig:
    required_tier: int = 5
    proton: Recipe = Recipe(u=2, d=1, gluons=1)
    neutron: Recipe = Recipe(u=1, d=2, gluons=1)
    base_stability: float = 0.5
    stability_bonus: float = 0.05
    max_stability: float = 0.95
    catalytic_gluon_chance: float = 0.3
    gluon_catalyst_pl_cost: float = 50000.0


@dataclass(frozen=True)
class AtomBuilderConfig:
    required_tier: int = 6
    proton_cost: float = 1.0
    neutron_cost: float = 1.0
    base_electron_cost: float = 1.0
    min_electron_cost: float = 0.4
    electron_efficiency_bonus: float = 0.05
    unlock_milestone: float = 250.0


@dataclass(frozen=True)
class FusionConfig:
    base_time_s: float = 5.0
    time_scale: float = 1.18
    base_cost: float = 10.0
    cost_scale: float = 1.22
    photons_per_z: float = 0.5
    energy_per_z: float = 2.0
    wall_z: int = 56
    post_wall_efficiency: float = 0.5
    post_wall_cost_mult: float = 1.5
    max_z: int = 82


@dataclass(frozen=True)
class DecayConfig:
    lead_z: int = 82
    lead_sample_energy: float = 100.0
    lead_sample_photons: float = 50.0
    lead_sample_durability: float = 100.0
    durability_per_step: float = 1.0
    energy_per_step: float = 10.0
    boson_cost: float = 1.0


@dataclass(frozen=True)
class ForcesConfig:
    unlock_element_count: int = 10
    iron_z: int = 26
    z_boson_stability_bonus: float = 0.05
    higgs_efficiency_bonus: float = 0.10


@dataclass(frozen=True)
class DebrisConfig:
    pq_rate: float = 0.1
    pl_rate: float = 0.05
    energy_rate: float = 0.02
    pity_rate: float = 0.1
    energy_amplifier_bonus: float = 0.10
    synergy_per_debris: float = 0.001
    synergy_cap: float = 0.25
    lepton_boost_bonus: float = 0.10
    precision_mastery_cap: float = 5.0


@dataclass(frozen=True)
class AutomationModuleConfig:
    base_cost: float          # chips
    cost_scale: float
    required_tier: int


@dataclass(frozen=True)
class AutomationConfig:
    required_tier: int = 4
    chip_energy_cost: float = 10.0
    base_interval_ms: float = 5000.0
    min_interval_ms: float = 250.0
    overdrive_collider_rate: float = 2.0
    modules: Dict[AutomationModuleId, AutomationModuleConfig] = field(default_factory=lambda: {
        AutomationModuleId.HARVESTER: AutomationModuleConfig(5.0, 1.5, 4),
        AutomationModuleId.COLLIDER: AutomationModuleConfig(10.0, 1.6, 4),
        AutomationModuleId.POLARITY: AutomationModuleConfig(15.0, 1.7, 4),
        AutomationModuleId.ANNIHILATE: AutomationModuleConfig(20.0, 1.8, 4),
        AutomationModuleId.ASSEMBLY: AutomationModuleConfig(30.0, 1.9, 5),
        AutomationModuleId.ATOM: AutomationModuleConfig(50.0, 2.0, 6),
        AutomationModuleId.FUSION: AutomationModuleConfig(75.0, 2.1, 6),
        AutomationModuleId.DECAY: AutomationModuleConfig(100.0, 2.2, 6),
    })


@dataclass(frozen=True)
class UpgradeConfig:
    # Hard stop for bulk "max" purchases, independent of cost convergence.
    max_bulk_iterations: int = 1000


@dataclass(frozen=True)
class Balance:
    loop: LoopConfig = LoopConfig()
    quarks: QuarkHarvesterConfig = QuarkHarvesterConfig()
    leptons: LeptonHarvesterConfig = LeptonHarvesterConfig()
    synergy: SynergyConfig = SynergyConfig()
    collider: Dict[int, ColliderTierConfig] = field(default_factory=lambda: {
        2: ColliderTierConfig(
            required_tier=2,
            base_cost=100.0,
            energy_cost=0.0,
            max_precision_spend=10.0,
            base_upgrade_chance=0.10,
            precision_bonus_per_pl=0.003,
            gluon_drop_chance=0.06,
            photon_drop_chance=0.08,
            debris_drop_chance=0.25,
            exotic_event_chance=0.01,
            failure_base_yield=2.0,
            antimatter_base_energy=1.0,
        ),
        3: ColliderTierConfig(
            required_tier=3,
            base_cost=1000.0,
            energy_cost=5.0,
            max_precision_spend=25.0,
            base_upgrade_chance=0.07,
            precision_bonus_per_pl=0.002,
            gluon_drop_chance=0.10,
            photon_drop_chance=0.12,
            debris_drop_chance=0.30,
            exotic_event_chance=0.015,
            failure_base_yield=3.0,
            antimatter_base_energy=3.0,
            fixed_pity_threshold=15.0,
        ),
    })
    tier3_particle_gate: float = 25.0
    pity: PityConfig = PityConfig()
    catalyst_slots: CatalystSlotConfig = CatalystSlotConfig()
    antimatter: AntimatterConfig = AntimatterConfig()
    exotic: ExoticEventConfig = ExoticEventConfig()
    boson_collider: BosonColliderConfig = BosonColliderConfig()
    annihilation: AnnihilationConfig = AnnihilationConfig()
    assembly: AssemblyConfig = AssemblyConfig()
    atoms: AtomBuilderConfig = AtomBuilderConfig()
    fusion: FusionConfig = FusionConfig()
    decay: DecayConfig = DecayConfig()
    forces: ForcesConfig = ForcesConfig()
    debris: DebrisConfig = DebrisConfig()
    automation: AutomationConfig = AutomationConfig()
    upgrades: UpgradeConfig = UpgradeConfig()
    # Emerge target tier -> {requirement key: threshold}.
    emerge_requirements: Dict[int, Dict[str, float]] = field(default_factory=lambda: {
        1: {"pq": 5000.0, "u": 500.0, "d": 500.0},
        2: {"pq": 25000.0, "pl": 500.0, "e-": 100.0, "ve": 100.0},
        3: {"pq": 150000.0, "pl": 2500.0, "tier2_particles": 25.0},
        4: {"pq": 800000.0, "pl": 15000.0, "energy": 100.0, "tier3_particles": 10.0},
        5: {"pq": 5000000.0, "pl": 100000.0, "energy": 500.0, "antimatter_particles": 50.0},
        6: {"pq": 20000000.0, "pl": 400000.0, "energy": 2000.0, "proton": 100.0, "neutron": 100.0},
    })
    max_tier: int = 6


BALANCE = Balance()
