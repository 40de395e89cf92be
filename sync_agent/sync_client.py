# sync_agent/sync_client.py
"""
Registration and heartbeat lifecycle

SyncClient registers the agent with the controller (bounded retries with
jittered exponential backoff) and then keeps a heartbeat thread running that
reports liveness and the local rules version. Heartbeat failures are retried
forever on a short fixed delay; only registration exhaustion is fatal.
"""

import logging
import random
import threading
from datetime import datetime
from enum import Enum
from typing import Optional

import requests

from .client import ControllerClient
from .collectors.local_identity import AgentIdentity
from .errors import (
    HeartbeatError,
    RegistrationAttemptError,
    RegistrationError,
    SyncAgentError,
)
from .schemas import HeartbeatRequest, PayloadOptions, RegistrationRequest

logger = logging.getLogger('sync-agent.sync')

MAX_REGISTRATION_ATTEMPTS = 5
FAILED_HEARTBEAT_RETRY_INTERVAL = 5.0  # seconds
# Upper bound for any heartbeat wait; Event.wait overflows past threading.TIMEOUT_MAX
MAX_HEARTBEAT_INTERVAL = min(7 * 24 * 3600.0, threading.TIMEOUT_MAX)


class SyncState(Enum):
    """Lifecycle state of the sync client"""
    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    REGISTERED = "registered"
    PERMANENTLY_FAILED = "permanently_failed"


class SyncClient:
    """
    Keeps the controller aware of this agent

    Responsibilities:
    1. Register with the controller, retrying with backoff
    2. Load the initial rule set from the registration response
    3. Send heartbeats with the current rules version until stopped
    """

    def __init__(
        self,
        identity: AgentIdentity,
        controller_url: str,
        rules_store,
        heartbeat_interval: float,
        transport: requests.Session,
        request_timeout: float = 10.0,
        max_registration_attempts: int = MAX_REGISTRATION_ATTEMPTS,
        heartbeat_retry_delay: float = FAILED_HEARTBEAT_RETRY_INTERVAL,
        payload_options: PayloadOptions = PayloadOptions(),
        rng: Optional[random.Random] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            identity: Local identity, resolved before construction
            controller_url: Controller base URL
            rules_store: Object exposing update_rules(doc) and current_version()
            heartbeat_interval: Seconds between successful heartbeats
            transport: Secured session used for all controller calls
            request_timeout: Per-request timeout in seconds
            max_registration_attempts: Attempts before registration gives up
            heartbeat_retry_delay: Seconds to wait after a failed heartbeat
            payload_options: Optional wire fields used by this deployment
            rng: Random source for backoff jitter
            stop_event: Event that interrupts waits and ends the heartbeat loop
        """
        if not 0 < heartbeat_interval <= MAX_HEARTBEAT_INTERVAL:
            raise ValueError(f"heartbeat_interval must be in (0, {MAX_HEARTBEAT_INTERVAL}] seconds")
        if not 0 < heartbeat_retry_delay <= MAX_HEARTBEAT_INTERVAL:
            raise ValueError(f"heartbeat_retry_delay must be in (0, {MAX_HEARTBEAT_INTERVAL}] seconds")
        if max_registration_attempts < 1:
            raise ValueError("max_registration_attempts must be at least 1")

        self.identity = identity
        self.rules_store = rules_store
        self.heartbeat_interval = heartbeat_interval
        self.max_registration_attempts = max_registration_attempts
        self.heartbeat_retry_delay = heartbeat_retry_delay
        self.payload_options = payload_options
        self.client = ControllerClient(controller_url, transport, timeout=request_timeout)

        self._rng = rng or random.Random()
        self._stop_event = stop_event or threading.Event()
        self._heartbeat_thread: Optional[threading.Thread] = None

        # State tracking
        self.state = SyncState.UNREGISTERED
        self.registered_at: Optional[datetime] = None
        self.last_heartbeat_at: Optional[datetime] = None
        self.last_heartbeat_ok: Optional[bool] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """
        Register (blocking) and launch the heartbeat thread

        Raises:
            RegistrationError: registration attempts were exhausted
        """
        if self.state != SyncState.UNREGISTERED:
            raise SyncAgentError(f"sync client already started (state: {self.state.value})")

        # A stop that interrupted an earlier start() must not cut this one short
        self._stop_event.clear()
        self.state = SyncState.REGISTERING

        try:
            self.register_with_backoff()
        except RegistrationError as e:
            self.state = SyncState.PERMANENTLY_FAILED if e.exhausted else SyncState.UNREGISTERED
            raise
        except Exception:
            self.state = SyncState.UNREGISTERED
            raise

        self.state = SyncState.REGISTERED
        self.registered_at = datetime.utcnow()
        logger.info("Successfully registered to controller")

        logger.info("Starting heartbeats to controller...")
        self._heartbeat_thread = threading.Thread(
            target=self.run_heartbeat_loop,
            name="sync-agent-heartbeat",
            daemon=True,
        )
        self._heartbeat_thread.start()

    def stop(self, timeout: Optional[float] = None):
        """Interrupt any pending wait and let the heartbeat thread exit"""
        logger.info("Stopping sync client...")
        self._stop_event.set()

        if self._heartbeat_thread and self._heartbeat_thread.is_alive():
            self._heartbeat_thread.join(timeout)

    @property
    def is_registered(self) -> bool:
        return self.state == SyncState.REGISTERED

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def compute_backoff(self, attempt: int) -> int:
        """
        Random whole seconds in [0, 2**attempt)

        The first retry may legitimately be immediate.
        """
        return self._rng.randrange(1 << attempt)

    def register_with_backoff(self):
        attempt = 0

        while True:
            try:
                self.register()
                return
            except RegistrationAttemptError as e:
                logger.error(f"Registration failed: {e}")

                attempt += 1

                if attempt >= self.max_registration_attempts:
                    raise RegistrationError(attempts=attempt, last_cause=e) from e

                backoff = self.compute_backoff(attempt)
                logger.info(f"Retrying registration (attempt: {attempt}, backoff: {backoff}s)")

                if self._stop_event.wait(backoff):
                    logger.info("Stop requested during registration backoff")
                    raise RegistrationError(attempts=attempt, last_cause=e, exhausted=False) from e

    def register(self):
        """
        One registration round trip

        Raises:
            RegistrationAttemptError: on any failure of this attempt
        """
        request = RegistrationRequest.from_identity(self.identity, self.payload_options)
        response = self.client.register(request)

        if response.verification_rules is not None:
            try:
                self.rules_store.update_rules(response.verification_rules)
            except Exception as e:
                raise RegistrationAttemptError(f"failed to store verification rules: {e}") from e

        hint = response.heart_beat_interval_minutes
        if hint is not None and self.payload_options.honor_interval_hint:
            if hint <= 0:
                logger.warning(f"Ignoring non-positive heartbeat interval hint: {hint}")
            elif hint * 60 > MAX_HEARTBEAT_INTERVAL:
                logger.warning(f"Ignoring heartbeat interval hint above {MAX_HEARTBEAT_INTERVAL:.0f}s: {hint} minute(s)")
            else:
                self.heartbeat_interval = hint * 60
                logger.info(f"Controller set heartbeat interval to {hint} minute(s)")

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------

    def heartbeat_once(self) -> bool:
        """Send a single heartbeat; True on success"""
        try:
            request = HeartbeatRequest.from_identity(
                self.identity,
                self.rules_store.current_version(),
                self.payload_options,
            )
            self.client.heartbeat(request)
            ok = True
            logger.info("Heartbeat sent successfully")
        except HeartbeatError as e:
            ok = False
            logger.error(f"Heartbeat failed: {e}")
        except Exception as e:
            ok = False
            logger.error(f"Failed to build heartbeat request: {e}")

        self.last_heartbeat_at = datetime.utcnow()
        self.last_heartbeat_ok = ok
        return ok

    def run_heartbeat_loop(self):
        """
        Heartbeat forever, until stop() is called

        A successful cycle waits heartbeat_interval, a failed one waits
        heartbeat_retry_delay. Failures are only logged.
        """
        while not self._stop_event.is_set():
            ok = self.heartbeat_once()
            delay = self.heartbeat_interval if ok else self.heartbeat_retry_delay
            delay = min(delay, MAX_HEARTBEAT_INTERVAL)

            if self._stop_event.wait(delay):
                break

        logger.info("Heartbeat loop stopped")
