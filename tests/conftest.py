"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from urnwatch.config import (
    AppConfig,
    ChainConfig,
    ContractsConfig,
    IlksConfig,
    MonitorConfig,
    WalletConfig,
)
from urnwatch.models import IlkParams, Snapshot, SystemRates, VaultPosition
from urnwatch.units import RAY, WAD

from helpers import CHAINLINK, DIAMOND, FEEDBASE, NPFM, T0, UNIWRAPPER, WALLET, WETH


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
    )


@pytest.fixture()
def sample_contracts() -> ContractsConfig:
    return ContractsConfig(
        diamond=DIAMOND,
        feedbase=FEEDBASE,
        npfm=NPFM,
        uniwrapper=UNIWRAPPER,
        chainlink_feed=CHAINLINK,
    )


@pytest.fixture()
def sample_ilks_config() -> IlksConfig:
    return IlksConfig(
        monitored=(":uninft", "weth"),
        pool_class=":uninft",
        key_mappings={"w": "weth", "u": ":uninft", "a": "arb"},
        gems={"weth": WETH},
    )


@pytest.fixture()
def sample_app_config(
    sample_chain_config: ChainConfig,
    sample_contracts: ContractsConfig,
    sample_ilks_config: IlksConfig,
) -> AppConfig:
    return AppConfig(
        monitor=MonitorConfig(refresh_seconds=5, max_events=3),
        wallet=WalletConfig(address=WALLET, nickname="tester"),
        ilks=sample_ilks_config,
        chain=sample_chain_config,
        contracts=sample_contracts,
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_ilk() -> IlkParams:
    return IlkParams(
        name="weth",
        tart=1_000 * WAD,
        rack=RAY,
        line=10**6 * 10**45,
        dust=10**45,
        fee=RAY,
        rho=T0,
        chop=RAY,
        hook="0x0000000000000000000000000000000000000000",
    )


@pytest.fixture()
def sample_snapshot() -> Snapshot:
    return Snapshot(
        vaults=(
            VaultPosition(
                ilk="weth",
                ink=2 * WAD,
                art=1_000 * WAD,
                debt=1_000 * WAD,
                loan=1_000 * WAD,
                value=2_000 * WAD,
                safety=2.0,
            ),
        ),
        par=RAY,
        mar=RAY,
        rates=SystemRates(way=RAY, tau=T0, how=RAY),
        xau=2_000 * RAY,
        block=100,
        block_timestamp=T0,
        taken_at=float(T0),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    monitor:
      refresh_seconds: 5
      failure_mode: cycle
      accrual_method: iterative
      max_events: 10
    wallet:
      address: "0x1111111111111111111111111111111111111111"
      nickname: tester
    ilks:
      monitored: [":uninft", weth]
      pool_class: ":uninft"
      key_mappings: {w: weth, u: ":uninft", 1: arb}
      gems: {weth: "0x7777777777777777777777777777777777777777"}
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    contracts:
      diamond: "0x2222222222222222222222222222222222222222"
      feedbase: "0x3333333333333333333333333333333333333333"
      npfm: "0x4444444444444444444444444444444444444444"
      uniwrapper: "0x5555555555555555555555555555555555555555"
      chainlink_feed: "0x6666666666666666666666666666666666666666"
    reference_tag: "xau:usd"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
