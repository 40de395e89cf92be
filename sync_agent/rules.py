# sync_agent/rules.py
"""
Verification Rules Store

Holds the rule-set document received from the controller and a version id
derived from its content, so the controller can tell when an agent is stale.
"""

import copy
import hashlib
import json
import logging
import threading
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger('sync-agent.rules')


def calculate_rules_version(rules: Any) -> str:
    """SHA-256 over the canonical JSON form of a rule-set document"""
    canonical = json.dumps(rules, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class InMemoryRulesStore:
    """
    Thread-safe in-memory rules store

    The heartbeat thread reads the version while the registration path
    (or any other updater) replaces the rules.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._rules: Optional[Any] = None
        self._version: Optional[str] = None
        self.updated_at: Optional[datetime] = None

    def update_rules(self, rules: Any):
        """Replace the complete rule set"""
        version = calculate_rules_version(rules)

        with self._lock:
            previous = self._version
            self._rules = copy.deepcopy(rules)
            self._version = version
            self.updated_at = datetime.utcnow()

        if previous == version:
            logger.debug("Rules unchanged")
        else:
            old = previous[:12] if previous else "none"
            logger.info(f"Rules updated: {old} -> {version[:12]}")

    def current_version(self) -> Optional[str]:
        """Version id of the current rules, None until rules are loaded"""
        with self._lock:
            return self._version

    def get_rules(self) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._rules)
