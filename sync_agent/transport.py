# sync_agent/transport.py
"""
Secured transport for controller calls

Builds a requests.Session that presents a client certificate and verifies
the controller against a CA bundle. Certificate provisioning (SPIFFE, rotation)
happens outside the agent; this only reads the files it is pointed at.
"""

import logging
from pathlib import Path
from typing import Optional

import requests

from . import __version__
from .errors import InvalidSettingsError

logger = logging.getLogger('sync-agent.transport')


def _require_file(path: str, what: str) -> str:
    if not Path(path).is_file():
        raise InvalidSettingsError(f"{what} not found: {path}")
    return path


def build_transport(
    cert_file: Optional[str] = None,
    key_file: Optional[str] = None,
    ca_file: Optional[str] = None,
) -> requests.Session:
    """
    Create the session used for every controller request

    Args:
        cert_file: Client certificate (PEM); mTLS is enabled when set with key_file
        key_file: Private key for cert_file
        ca_file: CA bundle used to verify the controller; system store when omitted
    """
    if bool(cert_file) != bool(key_file):
        raise InvalidSettingsError("TLS_CERT_FILE and TLS_KEY_FILE must be set together")

    session = requests.Session()
    session.headers.update({
        "Accept": "application/json",
        "User-Agent": f"sync-agent/{__version__}",
    })

    if cert_file and key_file:
        session.cert = (
            _require_file(cert_file, "client certificate"),
            _require_file(key_file, "client key"),
        )
        logger.info(f"Using client certificate {cert_file}")
    else:
        logger.warning("No client certificate configured, controller calls are not mutually authenticated")

    if ca_file:
        session.verify = _require_file(ca_file, "CA bundle")

    return session
