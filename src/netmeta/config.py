"""
Configuration management for netmeta.

Loads settings from environment variables (prefix ``NETMETA_``), optionally
seeded from a .env file.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

from netmeta.errors import ConfigurationError

ENV_PREFIX = "NETMETA_"

# Checked in order, first hit wins
ENV_LOCATIONS = [
    Path.home() / ".netmeta" / ".env",
    Path.home() / ".config" / "netmeta" / ".env",
    Path.cwd() / ".env",
]

DEFAULT_BGP_PORT = 179


@dataclass
class BGPPeerConfig:
    """A statically configured BGP peer."""
    address: str
    asn: int
    port: int = DEFAULT_BGP_PORT

    @classmethod
    def parse(cls, value: str) -> "BGPPeerConfig":
        """Parse ``address:asn[:port]``; IPv6 addresses go in brackets."""
        text = value.strip()
        if text.startswith("["):
            address, closed, rest = text[1:].partition("]")
            if not closed or (rest and not rest.startswith(":")):
                raise ConfigurationError(f"Invalid peer: {value!r} (unbalanced brackets)")
            parts = [address] + (rest[1:].split(":") if rest else [])
        else:
            parts = text.split(":")

        if len(parts) not in (2, 3) or not parts[0]:
            raise ConfigurationError(
                f"Invalid peer: {value!r} (expected address:asn[:port] or [ipv6]:asn[:port])"
            )
        try:
            asn = int(parts[1])
            port = int(parts[2]) if len(parts) == 3 and parts[2] else DEFAULT_BGP_PORT
        except ValueError:
            raise ConfigurationError(
                f"Invalid peer: {value!r} (ASN and port must be numbers)"
            ) from None
        return cls(address=parts[0], asn=asn, port=port)


@dataclass
class SessionConfig:
    """Session engine endpoint and call policy."""
    url: str = ""
    timeout: float = 5.0
    max_retries: int = 3
    retry_delay: float = 0.5


@dataclass
class BGPConfig:
    peers: list[BGPPeerConfig] = field(default_factory=list)
    refresh_interval: float = 5.0


@dataclass
class OSPFConfig:
    interface: str = ""
    pcap_file: str = ""


@dataclass
class MPLSConfig:
    enabled: bool = True
    interface: str = ""


@dataclass
class AutoConfig:
    """Auto-remediation thresholds."""
    enabled: bool = True
    flap_threshold: int = 3
    flap_window_sec: int = 300
    evaluation_interval: float = 10.0


@dataclass
class APIConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    push_interval: float = 2.0

    @property
    def base_url(self) -> str:
        host = "127.0.0.1" if self.host == "0.0.0.0" else self.host
        return f"http://{host}:{self.port}"


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = ""


@dataclass
class DBConfig:
    path: str = str(Path.home() / ".netmeta" / "netmeta.db")


@dataclass
class NetmetaConfig:
    """Top-level netmeta configuration."""
    bgp: BGPConfig = field(default_factory=BGPConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    ospf: OSPFConfig = field(default_factory=OSPFConfig)
    mpls: MPLSConfig = field(default_factory=MPLSConfig)
    auto: AutoConfig = field(default_factory=AutoConfig)
    api: APIConfig = field(default_factory=APIConfig)
    db: DBConfig = field(default_factory=DBConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "NetmetaConfig":
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (no .env
                files are loaded in that case)

        Returns:
            Populated configuration

        Raises:
            ConfigurationError: A setting does not parse
        """
        if environ is None:
            load_env_files()
            environ = dict(os.environ)

        def get(name: str, default: str = "") -> str:
            return environ.get(ENV_PREFIX + name, default)

        def number(name: str, default: str, kind: type = int):
            raw = get(name, default)
            try:
                return kind(raw)
            except ValueError:
                raise ConfigurationError(
                    f"{ENV_PREFIX}{name}={raw!r} is not a valid {kind.__name__}"
                ) from None

        peers = [
            BGPPeerConfig.parse(item)
            for item in get("BGP_PEERS").split(",")
            if item.strip()
        ]

        return cls(
            bgp=BGPConfig(
                peers=peers,
                refresh_interval=number("BGP_REFRESH_INTERVAL", "5", float),
            ),
            session=SessionConfig(
                url=get("SESSION_URL"),
                timeout=number("SESSION_TIMEOUT", "5", float),
                max_retries=number("SESSION_RETRIES", "3", int),
                retry_delay=number("SESSION_RETRY_DELAY", "0.5", float),
            ),
            ospf=OSPFConfig(
                interface=get("OSPF_INTERFACE"),
                pcap_file=get("OSPF_PCAP_FILE"),
            ),
            mpls=MPLSConfig(
                enabled=_parse_bool(get("MPLS_ENABLED", "true")),
                interface=get("MPLS_INTERFACE"),
            ),
            auto=AutoConfig(
                enabled=_parse_bool(get("AUTO_ENABLED", "true")),
                flap_threshold=number("AUTO_FLAP_THRESHOLD", "3", int),
                flap_window_sec=number("AUTO_FLAP_WINDOW_SEC", "300", int),
                evaluation_interval=number("AUTO_EVALUATION_INTERVAL", "10", float),
            ),
            api=APIConfig(
                host=get("API_HOST", "0.0.0.0"),
                port=number("API_PORT", "8080", int),
                push_interval=number("API_PUSH_INTERVAL", "2", float),
            ),
            db=DBConfig(
                path=get("DB_PATH", DBConfig().path),
            ),
            log=LogConfig(
                level=get("LOG_LEVEL", "INFO").upper(),
                file=get("LOG_FILE"),
            ),
        )


def load_env_files() -> Path | None:
    """Load the first .env file found in the standard locations."""
    for env_path in ENV_LOCATIONS:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")
