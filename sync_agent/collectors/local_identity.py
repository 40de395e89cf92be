# sync_agent/collectors/local_identity.py
"""
Local Identity Collector
Discovers the address this agent reports to the controller
"""

import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Dict, List, Optional

import psutil

from ..errors import NoUsableAddressError

logger = logging.getLogger('sync-agent.identity')


def resolve_local_ip(interfaces: Optional[Dict[str, List]] = None) -> str:
    """
    Return the first non-loopback IPv4 address on a local interface

    Args:
        interfaces: Mapping of interface name to address entries, shaped like
            psutil.net_if_addrs(). Read from the host when omitted.

    Raises:
        NoUsableAddressError: if no interface carries a usable address
    """
    if interfaces is None:
        interfaces = psutil.net_if_addrs()

    for name, addrs in interfaces.items():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue

            try:
                ip = ipaddress.ip_address(addr.address)
            except ValueError:
                logger.debug(f"Skipping unparseable address {addr.address!r} on {name}")
                continue

            if ip.version != 4 or ip.is_loopback:
                continue

            logger.debug(f"Using {ip} from interface {name}")
            return str(ip)

    raise NoUsableAddressError()


@dataclass(frozen=True)
class AgentIdentity:
    """Network identity reported to the controller; fixed for the process lifetime"""
    ip_address: str
    port: int
    namespace: str
    service_name: Optional[str] = None

    @classmethod
    def discover(
        cls,
        port: int,
        namespace: str,
        service_name: Optional[str] = None,
        interfaces: Optional[Dict[str, List]] = None,
    ) -> "AgentIdentity":
        """Resolve the local IP once and freeze it together with the given identity"""
        ip_address = resolve_local_ip(interfaces)
        logger.info(f"Local identity: {ip_address}:{port} (namespace: {namespace})")
        return cls(
            ip_address=ip_address,
            port=port,
            namespace=namespace,
            service_name=service_name,
        )
