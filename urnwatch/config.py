"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

FAILURE_MODES = ("vault", "cycle")
ACCRUAL_METHODS = ("iterative", "squaring")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonitorConfig:
    refresh_seconds: int = 15
    failure_mode: str = "vault"
    accrual_method: str = "iterative"
    max_events: int = 50
    events_from_block: int = 0
    safety_warning: float = 1.1


@dataclass(frozen=True)
class WalletConfig:
    address: str = ""
    nickname: str = ""


@dataclass(frozen=True)
class IlksConfig:
    monitored: tuple[str, ...] = ()
    pool_class: str = ":uninft"
    key_mappings: dict[str, str] = field(default_factory=dict)
    gems: dict[str, str] = field(default_factory=dict)

    @property
    def known(self) -> frozenset[str]:
        """Every class name the configuration mentions."""
        return frozenset(self.monitored) | frozenset(self.key_mappings.values())


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class ContractsConfig:
    diamond: str = ""
    feedbase: str = ""
    npfm: str = ""
    uniwrapper: str = ""
    chainlink_feed: str = ""


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    ilks: IlksConfig = field(default_factory=IlksConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    contracts: ContractsConfig = field(default_factory=ContractsConfig)
    reference_tag: str = "xau:usd"


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        refresh_seconds=int(raw.get("refresh_seconds", 15)),
        failure_mode=str(raw.get("failure_mode", "vault")),
        accrual_method=str(raw.get("accrual_method", "iterative")),
        max_events=int(raw.get("max_events", 50)),
        events_from_block=int(raw.get("events_from_block", 0)),
        safety_warning=float(raw.get("safety_warning", 1.1)),
    )


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(
        address=raw.get("address", ""),
        nickname=raw.get("nickname", "") or "",
    )


def _build_ilks(raw: dict[str, Any]) -> IlksConfig:
    # Digit keys arrive as ints from YAML.
    key_mappings = {str(k): str(v) for k, v in raw.get("key_mappings", {}).items()}
    return IlksConfig(
        monitored=tuple(str(i) for i in raw.get("monitored", [])),
        pool_class=str(raw.get("pool_class", ":uninft")),
        key_mappings=key_mappings,
        gems={str(k): str(v) for k, v in raw.get("gems", {}).items()},
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
    )


def _build_contracts(raw: dict[str, Any]) -> ContractsConfig:
    return ContractsConfig(
        diamond=raw.get("diamond", ""),
        feedbase=raw.get("feedbase", ""),
        npfm=raw.get("npfm", ""),
        uniwrapper=raw.get("uniwrapper", ""),
        chainlink_feed=raw.get("chainlink_feed", ""),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        monitor=_build_monitor(raw.get("monitor", {})),
        wallet=_build_wallet(raw.get("wallet", {})),
        ilks=_build_ilks(raw.get("ilks", {})),
        chain=_build_chain(raw.get("chain", {})),
        contracts=_build_contracts(raw.get("contracts", {})),
        reference_tag=str(raw.get("reference_tag", "xau:usd")),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.wallet.address:
        raise ValueError("Wallet has no address")

    if not cfg.ilks.monitored:
        raise ValueError("At least one collateral class must be monitored")

    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    if cfg.monitor.refresh_seconds <= 0:
        raise ValueError("refresh_seconds must be positive")

    if cfg.monitor.failure_mode not in FAILURE_MODES:
        raise ValueError(f"Unknown failure_mode '{cfg.monitor.failure_mode}'")

    if cfg.monitor.accrual_method not in ACCRUAL_METHODS:
        raise ValueError(f"Unknown accrual_method '{cfg.monitor.accrual_method}'")

    for name in ("diamond", "feedbase", "npfm", "uniwrapper", "chainlink_feed"):
        if not getattr(cfg.contracts, name):
            raise ValueError(f"Contract address '{name}' is not configured")

    for key in cfg.ilks.key_mappings:
        if len(key) != 1:
            raise ValueError(f"Key mapping '{key}' must be a single character")

    for ilk in cfg.ilks.gems:
        if ilk not in cfg.ilks.known:
            raise ValueError(f"Gem configured for unknown collateral class '{ilk}'")
