# sync_agent/collectors/__init__.py
"""
Data Collectors for Sync Agent
Collects the local identity reported to the controller
"""

from .local_identity import AgentIdentity, resolve_local_ip

__all__ = [
    'AgentIdentity',
    'resolve_local_ip',
]
