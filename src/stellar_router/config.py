"""Network configuration.

There is no process-wide default network: build a `NetworkConfig`, bind it
into a `HorizonClient`, and pass that client to every entry point.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from .core.exc import ConfigError


class Network(str, Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


TESTNET_HORIZON_URL = "https://horizon-testnet.stellar.org"
MAINNET_HORIZON_URL = "https://horizon.stellar.org"

TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"
MAINNET_PASSPHRASE = "Public Global Stellar Network ; September 2015"

DEFAULT_TIMEOUT_S: float = 30.0


@dataclass(frozen=True)
class NetworkConfig:
    """Horizon endpoint, passphrase and request timeout for one network."""
    network: Network
    horizon_url: str
    passphrase: str
    timeout: float = DEFAULT_TIMEOUT_S

    @staticmethod
    def for_network(network: Network | str) -> "NetworkConfig":
        net = _parse_network(network)
        if net is Network.MAINNET:
            return NetworkConfig(net, MAINNET_HORIZON_URL, MAINNET_PASSPHRASE)
        return NetworkConfig(net, TESTNET_HORIZON_URL, TESTNET_PASSPHRASE)

    @staticmethod
    def from_env() -> "NetworkConfig":
        """Read STELLAR_NETWORK, HORIZON_URL and HORIZON_TIMEOUT."""
        base = NetworkConfig.for_network(os.environ.get("STELLAR_NETWORK", "testnet"))
        url = os.environ.get("HORIZON_URL", "") or base.horizon_url
        raw_timeout = os.environ.get("HORIZON_TIMEOUT", str(DEFAULT_TIMEOUT_S))
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ConfigError(f"HORIZON_TIMEOUT must be a number, got {raw_timeout!r}") from exc
        if timeout <= 0:
            raise ConfigError("HORIZON_TIMEOUT must be > 0")
        return NetworkConfig(base.network, url.rstrip("/"), base.passphrase, timeout)


def _parse_network(network: Network | str) -> Network:
    if isinstance(network, Network):
        return network
    try:
        return Network(str(network).strip().lower())
    except ValueError as exc:
        raise ConfigError(f"unknown network {network!r} (expected testnet or mainnet)") from exc


__all__ = [
    "Network",
    "NetworkConfig",
    "TESTNET_HORIZON_URL",
    "MAINNET_HORIZON_URL",
    "TESTNET_PASSPHRASE",
    "MAINNET_PASSPHRASE",
]
