"""
Zero-configuration service discovery (mDNS / DNS-SD) for the cache server.

The server advertises "<name>._http._tcp.local." with its address and port;
clients resolve the same name to find it. Requires the zeroconf package
(pip install 'barcode-cache[discovery]').
"""

from __future__ import annotations

import logging
import socket
from typing import Dict, List, Optional, Tuple

from .core.errors import FatalConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_NAME = "BarcodeServer"
DEFAULT_SERVICE_TYPE = "_http._tcp"
DEFAULT_DOMAIN = "local."


def _import_zeroconf():
    try:
        import zeroconf

        return zeroconf
    except ImportError:
        return None


def _require_zeroconf():
    zc = _import_zeroconf()
    if zc is None:
        raise FatalConfigurationError(
            "zeroconf is not installed. Install with: pip install 'barcode-cache[discovery]'"
        )
    return zc


def full_service_type(service_type: str = DEFAULT_SERVICE_TYPE, domain: str = DEFAULT_DOMAIN) -> str:
    """'_http._tcp' + 'local.' -> '_http._tcp.local.'"""
    domain = domain if domain.endswith(".") else domain + "."
    return f"{service_type.strip('.')}.{domain}"


def full_service_name(name: str, service_type: str = DEFAULT_SERVICE_TYPE, domain: str = DEFAULT_DOMAIN) -> str:
    return f"{name}.{full_service_type(service_type, domain)}"


def primary_ipv4() -> str:
    """Address of the interface used for outbound traffic (no packets are sent)."""
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect(("10.255.255.255", 1))
        return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        s.close()


def local_addresses() -> List[str]:
    """All addresses this host's name resolves to, plus the primary IPv4."""
    hostname = socket.gethostname()
    found: List[str] = []
    try:
        for info in socket.getaddrinfo(hostname, None):
            addr = str(info[4][0])
            if addr not in found:
                found.append(addr)
    except socket.gaierror as exc:
        logger.debug("getaddrinfo(%s) failed: %s", hostname, exc)
    primary = primary_ipv4()
    if primary not in found:
        found.insert(0, primary)
    return found


def log_network_interfaces() -> None:
    logger.info("Network addresses for %s", socket.gethostname())
    for addr in local_addresses():
        logger.info("- %s", addr)


class ServiceAdvertiser:
    """Registers this server under a DNS-SD name while it runs."""

    def __init__(
        self,
        name: str = DEFAULT_NAME,
        service_type: str = DEFAULT_SERVICE_TYPE,
        domain: str = DEFAULT_DOMAIN,
    ) -> None:
        self.name = name
        self.service_type = service_type
        self.domain = domain
        self._zeroconf = None
        self._info = None

    @property
    def is_registered(self) -> bool:
        return self._info is not None

    def startup(self, port: int, txt: Optional[Dict[str, str]] = None, address: Optional[str] = None) -> None:
        """Advertise name -> (address, port). txt becomes the DNS-SD TXT record."""
        self.shutdown()
        zc = _require_zeroconf()
        address = address or primary_ipv4()
        info = zc.ServiceInfo(
            full_service_type(self.service_type, self.domain),
            full_service_name(self.name, self.service_type, self.domain),
            addresses=[socket.inet_aton(address)],
            port=port,
            properties=dict(txt or {}),
            server=f"{socket.gethostname()}.local.",
        )
        instance = zc.Zeroconf()
        try:
            instance.register_service(info)
        except Exception:
            instance.close()
            raise
        self._zeroconf, self._info = instance, info
        logger.info(
            "Zeroconf service: name=%s type=%s domain=%s address=%s:%d",
            self.name, self.service_type, self.domain, address, port,
        )

    def shutdown(self) -> None:
        if self._zeroconf is None:
            return
        instance, info = self._zeroconf, self._info
        self._zeroconf, self._info = None, None
        try:
            instance.unregister_service(info)
        finally:
            instance.close()


def resolve_service(
    name: str = DEFAULT_NAME,
    service_type: str = DEFAULT_SERVICE_TYPE,
    domain: str = DEFAULT_DOMAIN,
    timeout_s: float = 10.0,
    prefer_ipv4: bool = True,
) -> Optional[Tuple[str, int]]:
    """Find an advertised server. Returns (host, port), or None on timeout."""
    zc = _require_zeroconf()
    instance = zc.Zeroconf()
    try:
        info = instance.get_service_info(
            full_service_type(service_type, domain),
            full_service_name(name, service_type, domain),
            timeout=int(timeout_s * 1000),
        )
    finally:
        instance.close()
    if info is None or not info.port:
        logger.warning("Service discovery timeout for %s", name)
        return None
    addresses = info.parsed_addresses()
    if not addresses:
        return None
    v4 = [a for a in addresses if ":" not in a]
    v6 = [a for a in addresses if ":" in a]
    ordered = (v4 + v6) if prefer_ipv4 else (v6 + v4)
    return ordered[0], int(info.port)
