"""
Sync Agent

Sidecar that runs next to a service and keeps the controller aware of it:
- Registers with the controller over mTLS, retrying with backoff
- Sends heartbeats carrying the current rules version
- Heartbeat failures are only logged, they never stop the agent
"""

__version__ = "1.0.0"
__all__ = ["SyncClient", "SyncState", "AgentIdentity", "InMemoryRulesStore"]

from .collectors.local_identity import AgentIdentity
from .rules import InMemoryRulesStore
from .sync_client import SyncClient, SyncState
