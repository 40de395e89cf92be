#!/usr/bin/env python3
# sync_agent/agent.py
"""
Sync Agent Daemon
Registers with the controller, then heartbeats and serves the local status API
"""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

import uvicorn
from pydantic import ValidationError

from .api import create_app
from .collectors.local_identity import AgentIdentity
from .config import Settings, get_settings
from .errors import NoUsableAddressError, RegistrationError, SyncAgentError
from .rules import InMemoryRulesStore
from .schemas import PayloadOptions
from .sync_client import SyncClient
from .transport import build_transport

logger = logging.getLogger('sync-agent')


class SyncAgent:
    """
    Sync Agent - Main daemon class

    Responsibilities:
    1. Resolve the local identity once
    2. Register with the controller (fatal if it never succeeds)
    3. Keep heartbeats running in the background
    4. Serve the status API until shutdown
    """

    def __init__(self, settings: Settings, serve_api: bool = True):
        self.settings = settings
        self.serve_api = serve_api
        self._stop_event = threading.Event()

        if settings.CONTROLLER_SPIFFE_ID:
            logger.info(f"Controller identity: {settings.CONTROLLER_SPIFFE_ID}")

        self.identity = AgentIdentity.discover(
            port=settings.SERVICE_PORT,
            namespace=settings.MY_NAMESPACE,
            service_name=settings.SERVICE_NAME,
        )
        self.rules_store = InMemoryRulesStore()
        self.transport = build_transport(
            cert_file=settings.TLS_CERT_FILE,
            key_file=settings.TLS_KEY_FILE,
            ca_file=settings.TLS_CA_FILE,
        )
        self.sync_client = SyncClient(
            identity=self.identity,
            controller_url=settings.CONTROLLER_URL,
            rules_store=self.rules_store,
            heartbeat_interval=settings.heartbeat_interval_seconds,
            transport=self.transport,
            request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
            max_registration_attempts=settings.MAX_REGISTRATION_ATTEMPTS,
            heartbeat_retry_delay=settings.HEARTBEAT_RETRY_SECONDS,
            payload_options=PayloadOptions(
                include_service_name=settings.INCLUDE_SERVICE_NAME,
                include_rules_version=settings.INCLUDE_RULES_VERSION,
                honor_interval_hint=settings.HONOR_INTERVAL_HINT,
            ),
            stop_event=self._stop_event,
        )

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals gracefully"""
        logger.info(f"Received signal {signum}, shutting down...")
        self._stop_event.set()

    def run(self) -> int:
        """Main daemon flow; returns the process exit code"""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        logger.info(f"Starting Sync Agent (controller: {self.settings.CONTROLLER_URL})")

        try:
            self.sync_client.start()
        except RegistrationError as e:
            if not e.exhausted:
                logger.info("Registration interrupted, exiting")
                return 0
            logger.error(f"Failed to register with controller: {e}")
            return 1

        if self.serve_api:
            app = create_app(self.sync_client, self.rules_store)
            # uvicorn installs its own SIGINT/SIGTERM handling while serving
            uvicorn.run(
                app,
                host=self.settings.AGENT_API_HOST,
                port=self.settings.AGENT_API_PORT,
                log_level=self.settings.LOG_LEVEL.lower(),
            )
        else:
            self._stop_event.wait()

        self.cleanup()
        return 0

    def cleanup(self):
        logger.info("Agent shutting down")
        self.sync_client.stop(timeout=5)
        self.transport.close()


def main(argv: Optional[list] = None):
    parser = argparse.ArgumentParser(description="Sync Agent")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides LOG_LEVEL)",
    )
    parser.add_argument(
        "--no-api",
        action="store_true",
        help="Do not serve the local status API",
    )
    args = parser.parse_args(argv)

    overrides = {"LOG_LEVEL": args.log_level} if args.log_level else {}

    try:
        settings = get_settings(**overrides)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        agent = SyncAgent(settings, serve_api=not args.no_api)
    except NoUsableAddressError as e:
        logger.error(f"Cannot determine local identity: {e}")
        sys.exit(1)
    except SyncAgentError as e:
        logger.error(f"Initialization failed: {e}")
        sys.exit(1)

    sys.exit(agent.run())


if __name__ == "__main__":
    main()
