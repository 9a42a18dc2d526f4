from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class Matter(str, Enum):
    U = "u"
    D = "d"
    ELECTRON = "e-"
    NU_E = "ve"
    S = "s"
    C = "c"
    MUON = "mu-"
    NU_MU = "vmu"
    B = "b"
    T = "t"
    TAU = "tau-"
    NU_TAU = "vtau"


class Antimatter(str, Enum):
    U_BAR = "u_bar"
    D_BAR = "d_bar"
    POSITRON = "e+"
    NU_E_BAR = "ve_bar"
    S_BAR = "s_bar"
    C_BAR = "c_bar"
    ANTIMUON = "mu+"
    NU_MU_BAR = "vmu_bar"
    B_BAR = "b_bar"
    T_BAR = "t_bar"
    ANTITAU = "tau+"
    NU_TAU_BAR = "vtau_bar"


class Catalyst(str, Enum):
    PHOTON = "photon"
    GLUON = "gluon"


class Composite(str, Enum):
    PROTON = "proton"
    NEUTRON = "neutron"


class Boson(str, Enum):
    W_PLUS = "W+"
    W_MINUS = "W-"
    Z0 = "Z0"
    HIGGS = "higgs"


class Currency(str, Enum):
    PQ = "pq"
    PL = "pl"
    ENERGY = "energy"
    DEBRIS = "debris"
    ATOM_UNITS = "atom_units"


class Polarity(str, Enum):
    MATTER = "matter"
    ANTIMATTER = "antimatter"


class ColliderMode(str, Enum):
    QUARK = "quark"
    LEPTON = "lepton"


class BuyMode(str, Enum):
    X1 = "x1"
    X10 = "x10"
    MAX = "max"


class Harvester(str, Enum):
    QUARK = "quark"
    LEPTON = "lepton"


class UpgradeId(str, Enum):
    QUARK_RATE = "quark_rate"
    QUARK_EFFICIENCY = "quark_efficiency"
    LEPTON_RATE = "lepton_rate"
    PRECISION = "precision"
    CATALYST_SLOTS = "catalyst_slots"
    STABILITY = "stability"
    ELECTRON_EFFICIENCY = "electron_efficiency"
    # Debris shop, survives emerge.
    ENERGY_AMPLIFIER = "energy_amplifier"
    DEBRIS_SYNERGY = "debris_synergy"
    LEPTON_BOOST = "lepton_boost"
    PRECISION_MASTERY = "precision_mastery"


class AutomationModuleId(str, Enum):
    HARVESTER = "harvester"
    COLLIDER = "collider"
    POLARITY = "polarity"
    ANNIHILATE = "annihilate"
    ASSEMBLY = "assembly"
    ATOM = "atom"
    FUSION = "fusion"
    DECAY = "decay"


# Matter symbol -> its antiparticle. Total over Matter.
ANTIPARTICLE: Dict[Matter, Antimatter] = {
    m: a for m, a in zip(Matter, Antimatter)
}

TIER1_QUARKS: Tuple[Matter, Matter] = (Matter.U, Matter.D)
TIER1_LEPTONS: Tuple[Matter, Matter] = (Matter.ELECTRON, Matter.NU_E)
TIER2_MATTER: Tuple[Matter, ...] = (Matter.S, Matter.C, Matter.MUON, Matter.NU_MU)
TIER3_MATTER: Tuple[Matter, ...] = (Matter.B, Matter.T, Matter.TAU, Matter.NU_TAU)

RUN_UPGRADES: Tuple[UpgradeId, ...] = (
    UpgradeId.QUARK_RATE,
    UpgradeId.QUARK_EFFICIENCY,
    UpgradeId.LEPTON_RATE,
    UpgradeId.PRECISION,
    UpgradeId.CATALYST_SLOTS,
    UpgradeId.STABILITY,
    UpgradeId.ELECTRON_EFFICIENCY,
)
DEBRIS_UPGRADES: Tuple[UpgradeId, ...] = (
    UpgradeId.ENERGY_AMPLIFIER,
    UpgradeId.DEBRIS_SYNERGY,
    UpgradeId.LEPTON_BOOST,
    UpgradeId.PRECISION_MASTERY,
)

# (collider tier, mode) -> the two particles a successful run picks between.
COLLIDER_PRODUCTS: Dict[Tuple[int, ColliderMode], Tuple[Matter, Matter]] = {
    (2, ColliderMode.QUARK): (Matter.S, Matter.C),
    (2, ColliderMode.LEPTON): (Matter.MUON, Matter.NU_MU),
    (3, ColliderMode.QUARK): (Matter.B, Matter.T),
    (3, ColliderMode.LEPTON): (Matter.TAU, Matter.NU_TAU),
}

# Consolation particles granted on a failed run, per mode.
FAILURE_PRODUCTS: Dict[ColliderMode, Tuple[Matter, Matter]] = {
    ColliderMode.QUARK: TIER1_QUARKS,
    ColliderMode.LEPTON: TIER1_LEPTONS,
}
