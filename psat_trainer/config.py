from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from .keys import KEYS_BY_NAME, PASAT_DIGITS
from .psat_core import Model, init_model
from .rng import Seed

logger = logging.getLogger(__name__)

ISI_ENV = "PSAT_ISI_MS"
DURATION_ENV = "PSAT_DURATION_MIN"
SEED_ENV = "PSAT_SEED"
KEY_ENV = "PSAT_KEY"
LOG_LEVEL_ENV = "PSAT_LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class PsatConfig:
    # Standard PASAT pacing: one digit every 3 s.
    isi_ms: int = 3000
    duration_min: int = 5
    pool: tuple[int, ...] = PASAT_DIGITS
    key_name: str = "sum2"
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.isi_ms <= 0:
            raise ValueError("isi_ms must be > 0")
        if self.duration_min <= 0:
            raise ValueError("duration_min must be > 0")
        if not self.pool:
            raise ValueError("pool must not be empty")
        if self.key_name not in KEYS_BY_NAME:
            raise ValueError(f"unknown key {self.key_name!r}")


def _env_int(environ: Mapping[str, str], name: str, fallback: int | None) -> int | None:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return fallback
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r (not an integer)", name, raw)
        return fallback


def load_config(environ: Mapping[str, str] | None = None) -> PsatConfig:
    """Build a PsatConfig from defaults overridden by PSAT_* variables."""

    env = os.environ if environ is None else environ
    defaults = PsatConfig()
    isi_ms = _env_int(env, ISI_ENV, defaults.isi_ms)
    duration_min = _env_int(env, DURATION_ENV, defaults.duration_min)
    key_name = env.get(KEY_ENV, defaults.key_name).strip() or defaults.key_name
    return PsatConfig(
        isi_ms=defaults.isi_ms if isi_ms is None else isi_ms,
        duration_min=defaults.duration_min if duration_min is None else duration_min,
        key_name=key_name,
        seed=_env_int(env, SEED_ENV, None),
    )


def build_model(config: PsatConfig) -> Model[int, int]:
    seed = Seed.from_entropy() if config.seed is None else Seed.from_int(config.seed)
    return init_model(
        key=KEYS_BY_NAME[config.key_name],
        pqs=config.pool,
        isi=config.isi_ms,
        duration=config.duration_min,
        seed=seed,
    )
