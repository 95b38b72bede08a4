"""
revsplit.config — arithmetic widths, caps, logging and metrics knobs.

Covers:
- Fixed-width arithmetic envelope (amount / weight / id / accumulator bits)
- Logging level used by the CLIs and HTTP app
- Metrics toggle

Environment overrides (all optional; sensible defaults provided):

  REVSPLIT_AMOUNT_BITS=224        # cap = 2**bits - 1 for deposits/distributions
  REVSPLIT_WEIGHT_BITS=32         # max weight = 2**bits - 1
  REVSPLIT_ID_BITS=8              # max memberships = 2**bits - 1
  REVSPLIT_ACCUMULATOR_BITS=256   # width of value * weight
  REVSPLIT_LOG_LEVEL=INFO
  REVSPLIT_METRICS=1

You can also load from a JSON or YAML file via
`REVSPLIT_CONFIG_FILE=/path/to/config.(json|yaml|yml)`:

    limits:
      amount_bits: 240
      weight_bits: 16
    log_level: DEBUG

File values override defaults; environment overrides the file.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}


# -------------------------- Data classes --------------------------


@dataclass(frozen=True)
class Limits:
    """
    Fixed-width envelope for the ledger.

    `amount_bits + weight_bits <= accumulator_bits` guarantees that
    `amount * weight` always fits the accumulator, so share computation can
    never overflow once amounts are capped.
    """
    amount_bits: int = 224
    weight_bits: int = 32
    id_bits: int = 8
    accumulator_bits: int = 256

    @property
    def max_amount(self) -> int:
        return (1 << self.amount_bits) - 1

    @property
    def max_weight(self) -> int:
        return (1 << self.weight_bits) - 1

    @property
    def max_members(self) -> int:
        return (1 << self.id_bits) - 1

    def validate(self) -> None:
        for name, v in (("amount_bits", self.amount_bits),
                        ("weight_bits", self.weight_bits),
                        ("id_bits", self.id_bits),
                        ("accumulator_bits", self.accumulator_bits)):
            if not isinstance(v, int) or v <= 0:
                raise ValueError(f"{name} must be a positive int (got {v!r}).")
        if self.amount_bits + self.weight_bits > self.accumulator_bits:
            raise ValueError(
                f"amount_bits + weight_bits must fit the accumulator "
                f"({self.amount_bits} + {self.weight_bits} > {self.accumulator_bits})."
            )
        if self.id_bits > 32:
            raise ValueError(f"id_bits must be <= 32 (got {self.id_bits}).")


@dataclass(frozen=True)
class SplitConfig:
    limits: Limits = field(default_factory=Limits)
    log_level: str = "INFO"
    metrics_enabled: bool = True

    def validate(self) -> None:
        self.limits.validate()
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {self.log_level!r}")

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["limits"]["max_amount"] = self.limits.max_amount
        d["limits"]["max_weight"] = self.limits.max_weight
        d["limits"]["max_members"] = self.limits.max_members
        return d


# -------------------------- Loading helpers --------------------------


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    return default


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw, 0)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from e


def _load_file(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return data


def _from_mapping(base: SplitConfig, data: Mapping[str, Any]) -> SplitConfig:
    lim = dict(data.get("limits") or {})
    limits = replace(
        base.limits,
        **{k: int(v) for k, v in lim.items() if k in ("amount_bits", "weight_bits", "id_bits", "accumulator_bits")},
    )
    return replace(
        base,
        limits=limits,
        log_level=str(data.get("log_level", base.log_level)),
        metrics_enabled=bool(data.get("metrics_enabled", base.metrics_enabled)),
    )


def load_config(env: Optional[Mapping[str, str]] = None) -> SplitConfig:
    """
    Build a SplitConfig from defaults, then the optional config file, then env.
    """
    env = os.environ if env is None else env
    cfg = SplitConfig()

    file_path = env.get("REVSPLIT_CONFIG_FILE")
    if file_path:
        cfg = _from_mapping(cfg, _load_file(Path(file_path).expanduser()))

    limits = Limits(
        amount_bits=_int_env(env, "REVSPLIT_AMOUNT_BITS", cfg.limits.amount_bits),
        weight_bits=_int_env(env, "REVSPLIT_WEIGHT_BITS", cfg.limits.weight_bits),
        id_bits=_int_env(env, "REVSPLIT_ID_BITS", cfg.limits.id_bits),
        accumulator_bits=_int_env(env, "REVSPLIT_ACCUMULATOR_BITS", cfg.limits.accumulator_bits),
    )
    cfg = replace(
        cfg,
        limits=limits,
        log_level=env.get("REVSPLIT_LOG_LEVEL", cfg.log_level).upper(),
        metrics_enabled=_bool_env(env.get("REVSPLIT_METRICS"), cfg.metrics_enabled),
    )
    cfg.validate()
    return cfg


@lru_cache(maxsize=1)
def get_config() -> SplitConfig:
    """Process-wide cached configuration (call `get_config.cache_clear()` in tests)."""
    return load_config()


__all__ = ["Limits", "SplitConfig", "load_config", "get_config"]
