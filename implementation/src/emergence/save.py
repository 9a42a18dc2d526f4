"""Snapshot persistence: save/load, export/import.

On disk and in export strings a snapshot is the envelope
``{"version": N, "state": {...}}``. Loading deep-merges the stored state onto
a fresh default before decoding, so fields added since the save was written
get their defaults and unknown fields are ignored. Values that are not
finite, negative, or of the wrong type fall back to the default as well.

Export: base64 of the JSON envelope. Import: raw JSON or base64 JSON.
"""
from __future__ import annotations

import base64
import binascii
import dataclasses
import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, Optional

from emergence.balance import BALANCE
from emergence.state import (
    ActiveFusion,
    AutomationModule,
    GameState,
    SETTINGS_TYPES,
    create_initial_state,
    fresh_elements,
    now_ms,
)
from emergence.types import AutomationModuleId, BuyMode, ColliderMode, Composite, Polarity

logger = logging.getLogger(__name__)

SAVE_VERSION = 1
SAVE_ENV_VAR = "PARTICLE_EMERGENCE_SAVE"


def default_save_path() -> Path:
    override = os.environ.get(SAVE_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".particle_emergence" / "save.json"


# ── Encoding ──────────────────────────────────────────────────────────


def _settings_to_dict(settings) -> Dict[str, Any]:
    out = {}
    for f in dataclasses.fields(settings):
        value = getattr(settings, f.name)
        out[f.name] = value.value if isinstance(value, Composite) else value
    return out


def state_to_dict(state: GameState) -> Dict[str, Any]:
    """Build a JSON-serializable dict from the state."""
    store = state.store
    collider = state.collider
    return {
        "tier": state.tier,
        "highest_tier": state.highest_tier,
        "store": {
            "pq": store.pq,
            "pl": store.pl,
            "energy": store.energy,
            "debris": store.debris,
            "atom_units": store.atom_units,
        },
        "matter": {k.value: v for k, v in state.matter.items()},
        "antimatter": {k.value: v for k, v in state.antimatter.items()},
        "catalysts": {k.value: v for k, v in state.catalysts.items()},
        "composites": {k.value: v for k, v in state.composites.items()},
        "bosons": {k.value: v for k, v in state.bosons.items()},
        "upgrades": {k.value: v for k, v in state.upgrades.items()},
        "unlocks": dataclasses.asdict(state.unlocks),
        "debris_upgrades": {k.value: v for k, v in state.debris_upgrades.items()},
        "harvesters": {
            k.value: {"polarity": h.polarity.value, "cooldown": h.cooldown}
            for k, h in state.harvesters.items()
        },
        "collider": {
            "tier": collider.tier,
            "mode": collider.mode.value,
            "matter_mode": collider.matter_mode.value,
            "precision_spend": collider.precision_spend,
            "pity": collider.pity,
            "slotted_photons": collider.slotted_photons,
            "slotted_gluons": collider.slotted_gluons,
            "boson_mode": collider.boson_mode,
            "cooldown": collider.cooldown,
        },
        "automation": {
            "chips": state.automation.chips,
            "modules": {
                mid.value: {
                    "unlocked": m.unlocked,
                    "enabled": m.enabled,
                    "level": m.level,
                    "last_run": m.last_run,
                    "settings": _settings_to_dict(m.settings),
                }
                for mid, m in state.automation.modules.items()
            },
        },
        "elements": [
            {
                "z": e.z,
                "symbol": e.symbol,
                "name": e.name,
                "unlocked": e.unlocked,
                "fusion_progress": e.fusion_progress,
                "fusion_start": e.fusion_start,
            }
            for e in state.elements
        ],
        "active_fusion": (
            None if state.active_fusion is None
            else {"z": state.active_fusion.z, "start": state.active_fusion.start}
        ),
        "lead_sample": dataclasses.asdict(state.lead_sample),
        "temp_buffs": {
            "collider_overdrive": dataclasses.asdict(state.temp_buffs.collider_overdrive),
        },
        "stats": dataclasses.asdict(state.stats),
        "last_tick": state.last_tick,
        "last_save": state.last_save,
        "forces_unlocked": state.forces_unlocked,
        "periodic_table_unlocked": state.periodic_table_unlocked,
        "buy_mode": state.buy_mode.value,
    }


# ── Decoding ──────────────────────────────────────────────────────────


def _num(raw: Any, default: float) -> float:
    if isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value) or value < 0:
        return default
    return value


def _int(raw: Any, default: int) -> int:
    return int(_num(raw, default))


def _bool(raw: Any, default: bool) -> bool:
    return raw if isinstance(raw, bool) else default


def _enum(enum_cls, raw: Any, default):
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _fill_amounts(target: Dict, raw: Dict[str, Any], numeric=_num) -> None:
    for key in target:
        target[key] = numeric(raw.get(key.value), target[key])


def _settings_from_dict(module_id: AutomationModuleId, raw: Dict[str, Any]):
    settings = SETTINGS_TYPES[module_id]()
    for f in dataclasses.fields(settings):
        default = getattr(settings, f.name)
        value = raw.get(f.name, default)
        if f.name == "composite":
            value = None if value is None else _enum(Composite, value, default)
        elif isinstance(default, bool):
            value = _bool(value, default)
        elif isinstance(default, int):
            value = _int(value, default)
        else:
            value = _num(value, default)
        setattr(settings, f.name, value)
    return settings


def state_from_dict(data: Dict[str, Any], now: Optional[float] = None) -> GameState:
    """Decode a state dict (normally already merged onto defaults)."""
    state = create_initial_state(now)

    state.tier = min(_int(data.get("tier"), 0), BALANCE.max_tier)
    state.highest_tier = max(state.tier, min(_int(data.get("highest_tier"), 0), BALANCE.max_tier))

    store = _section(data, "store")
    for name in ("pq", "pl", "energy", "debris", "atom_units"):
        setattr(state.store, name, _num(store.get(name), 0.0))

    _fill_amounts(state.matter, _section(data, "matter"))
    _fill_amounts(state.antimatter, _section(data, "antimatter"))
    _fill_amounts(state.catalysts, _section(data, "catalysts"))
    _fill_amounts(state.composites, _section(data, "composites"))
    _fill_amounts(state.bosons, _section(data, "bosons"))
    _fill_amounts(state.upgrades, _section(data, "upgrades"), _int)
    _fill_amounts(state.debris_upgrades, _section(data, "debris_upgrades"), _int)

    unlocks = _section(data, "unlocks")
    for f in dataclasses.fields(state.unlocks):
        setattr(state.unlocks, f.name, _bool(unlocks.get(f.name), False))

    harvesters = _section(data, "harvesters")
    for harvester, h in state.harvesters.items():
        raw = harvesters.get(harvester.value)
        raw = raw if isinstance(raw, dict) else {}
        h.polarity = _enum(Polarity, raw.get("polarity"), Polarity.MATTER)
        h.cooldown = _num(raw.get("cooldown"), 0.0)

    collider = _section(data, "collider")
    c = state.collider
    tier = _int(collider.get("tier"), 2)
    c.tier = tier if tier in BALANCE.collider else 2
    c.mode = _enum(ColliderMode, collider.get("mode"), ColliderMode.QUARK)
    c.matter_mode = _enum(Polarity, collider.get("matter_mode"), Polarity.MATTER)
    c.precision_spend = _num(collider.get("precision_spend"), 0.0)
    c.pity = _num(collider.get("pity"), 0.0)
    c.slotted_photons = _int(collider.get("slotted_photons"), 0)
    c.slotted_gluons = _int(collider.get("slotted_gluons"), 0)
    c.boson_mode = _bool(collider.get("boson_mode"), False)
    c.cooldown = _num(collider.get("cooldown"), 0.0)

    automation = _section(data, "automation")
    state.automation.chips = _num(automation.get("chips"), 0.0)
    modules = _section(automation, "modules")
    for module_id in AutomationModuleId:
        raw = modules.get(module_id.value)
        raw = raw if isinstance(raw, dict) else {}
        settings = raw.get("settings")
        state.automation.modules[module_id] = AutomationModule(
            module_id=module_id,
            unlocked=_bool(raw.get("unlocked"), False),
            enabled=_bool(raw.get("enabled"), False),
            level=_int(raw.get("level"), 0),
            settings=_settings_from_dict(module_id, settings if isinstance(settings, dict) else {}),
            last_run=_num(raw.get("last_run"), 0.0),
        )

    # Elements are matched by Z onto the packaged table, which keeps Z unique
    # and contiguous no matter what the snapshot holds.
    state.elements = fresh_elements()
    raw_elements = data.get("elements")
    for raw in raw_elements if isinstance(raw_elements, list) else []:
        if not isinstance(raw, dict):
            continue
        element = state.element(_int(raw.get("z"), 0))
        if element is None:
            continue
        element.unlocked = _bool(raw.get("unlocked"), False)
        element.fusion_progress = min(1.0, _num(raw.get("fusion_progress"), 0.0))
        start = raw.get("fusion_start")
        element.fusion_start = None if start is None else _num(start, 0.0)

    fusion = data.get("active_fusion")
    if isinstance(fusion, dict):
        element = state.element(_int(fusion.get("z"), 0))
        if element is not None and not element.unlocked:
            state.active_fusion = ActiveFusion(z=element.z, start=_num(fusion.get("start"), 0.0))

    lead = _section(data, "lead_sample")
    state.lead_sample.crafted = _bool(lead.get("crafted"), False)
    state.lead_sample.max_durability = _num(lead.get("max_durability"), BALANCE.decay.lead_sample_durability)
    state.lead_sample.durability = min(_num(lead.get("durability"), 0.0), state.lead_sample.max_durability)

    overdrive = _section(_section(data, "temp_buffs"), "collider_overdrive")
    state.temp_buffs.collider_overdrive.active = _bool(overdrive.get("active"), False)
    state.temp_buffs.collider_overdrive.end = _num(overdrive.get("end"), 0.0)

    stats = _section(data, "stats")
    for f in dataclasses.fields(state.stats):
        default = getattr(state.stats, f.name)
        numeric = _int if isinstance(default, int) else _num
        setattr(state.stats, f.name, numeric(stats.get(f.name), default))

    state.last_tick = _num(data.get("last_tick"), state.last_tick)
    state.last_save = _num(data.get("last_save"), state.last_save)
    state.forces_unlocked = _bool(data.get("forces_unlocked"), False)
    state.periodic_table_unlocked = _bool(data.get("periodic_table_unlocked"), False)
    state.buy_mode = _enum(BuyMode, data.get("buy_mode"), BuyMode.X1)
    return state


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive merge: dicts merge key by key; anything else from ``override`` wins when present."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            result[key] = deep_merge(base[key], value)
        else:
            result[key] = value
    return result


# ── Envelope ──────────────────────────────────────────────────────────


def make_envelope(state: GameState, now: Optional[float] = None) -> Dict[str, Any]:
    """Envelope with ``last_save`` stamped. The live state is left untouched."""
    data = state_to_dict(state)
    data["last_save"] = now_ms() if now is None else now
    return {"version": SAVE_VERSION, "state": data}


def restore_envelope(envelope: Any, now: Optional[float] = None) -> Optional[GameState]:
    """Migrate and fill an envelope. Returns None when it is not a snapshot."""
    if not isinstance(envelope, dict) or not isinstance(envelope.get("state"), dict):
        logger.warning("snapshot has no state section, ignoring it")
        return None
    version = envelope.get("version")
    if not isinstance(version, int) or version < SAVE_VERSION:
        logger.info("migrating snapshot from version %s to %d", version, SAVE_VERSION)
    elif version > SAVE_VERSION:
        logger.warning("snapshot version %d is newer than %d, loading what is understood", version, SAVE_VERSION)
    defaults = state_to_dict(create_initial_state(now))
    return state_from_dict(deep_merge(defaults, envelope["state"]), now)


# ── Files ─────────────────────────────────────────────────────────────


def save_game(state: GameState, path: Optional[Path] = None, now: Optional[float] = None) -> bool:
    """Write the snapshot atomically (tmp + rename)."""
    path = path or default_save_path()
    data = make_envelope(state, now)
    tmp_path = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        tmp_path.replace(path)
    except OSError as e:
        logger.error("error saving game to %s: %s", path, e)
        return False
    return True


def load_game(path: Optional[Path] = None, now: Optional[float] = None) -> Optional[GameState]:
    """Read a snapshot. Returns None on a missing or corrupt file."""
    path = path or default_save_path()
    if not path.exists():
        return None
    try:
        envelope = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("error loading save file %s: %s", path, e)
        return None
    return restore_envelope(envelope, now)


def load_or_create(path: Optional[Path] = None, now: Optional[float] = None) -> GameState:
    state = load_game(path, now)
    if state is None:
        logger.info("starting a new game")
        return create_initial_state(now)
    return state


def delete_save(path: Optional[Path] = None) -> bool:
    path = path or default_save_path()
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error("error deleting save %s: %s", path, e)
        return False
    return True


def hard_reset(path: Optional[Path] = None, now: Optional[float] = None) -> GameState:
    """Wipe everything, persistent progress included."""
    delete_save(path)
    logger.info("hard reset")
    return create_initial_state(now)


# ── Export / import strings ───────────────────────────────────────────


def export_save(state: GameState, now: Optional[float] = None) -> str:
    raw = json.dumps(make_envelope(state, now)).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def _try_import_data(encoded: str) -> Optional[dict]:
    """Parse raw JSON first, then base64 JSON."""
    text = encoded.strip()
    try:
        data = json.loads(text)
        if isinstance(data, dict) and "version" in data:
            return data
    except json.JSONDecodeError:
        pass

    try:
        raw = base64.b64decode(text, validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError):
        # json.JSONDecodeError and UnicodeDecodeError are ValueErrors.
        return None
    if isinstance(data, dict) and "version" in data:
        return data
    return None


def import_save(encoded: str, now: Optional[float] = None) -> Optional[GameState]:
    data = _try_import_data(encoded)
    if data is None:
        logger.warning("could not parse import data (not a valid save)")
        return None
    return restore_envelope(data, now)
