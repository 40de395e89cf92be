# sync_agent/client.py
"""
HTTP client for the controller

Each call is exactly one round trip. Retry policy belongs to the caller
(see sync_client.SyncClient).
"""

import logging
import math
from urllib.parse import urljoin

import requests
from pydantic import ValidationError

from .errors import HeartbeatError, InvalidSettingsError, RegistrationAttemptError
from .schemas import HeartbeatRequest, RegistrationRequest, RegistrationResponse

logger = logging.getLogger('sync-agent.client')

REGISTRATION_PATH = "register"
HEARTBEAT_PATH = "heartbeat"

JSON_HEADERS = {"Content-Type": "application/json"}


class ControllerClient:
    """Thin wrapper around the secured transport"""

    def __init__(
        self,
        base_url: str,
        session: requests.Session,
        timeout: float = 10.0,
    ):
        """
        Args:
            base_url: Controller base URL, paths are resolved below it
            session: Pre-configured (mTLS) session used for every request
            timeout: Per-request connect/read timeout in seconds; must be finite
        """
        if not isinstance(timeout, (int, float)) or not math.isfinite(timeout) or timeout <= 0:
            raise InvalidSettingsError(f"request timeout must be a finite positive number, got {timeout!r}")

        # Keep any path prefix on the base URL when joining endpoint paths
        self.base_url = base_url.rstrip("/") + "/"
        self.session = session
        self.timeout = timeout

        self.register_url = urljoin(self.base_url, REGISTRATION_PATH)
        self.heartbeat_url = urljoin(self.base_url, HEARTBEAT_PATH)

    def register(self, request: RegistrationRequest) -> RegistrationResponse:
        """
        POST the registration request

        Raises:
            RegistrationAttemptError: transport error, non-200 status, or
                a body that cannot be decoded
        """
        try:
            body = request.to_json()
        except ValueError as e:
            raise RegistrationAttemptError(f"failed to marshal registration data: {e}") from e

        try:
            resp = self.session.post(
                self.register_url,
                data=body,
                headers=JSON_HEADERS,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RegistrationAttemptError(f"failed to send registration request: {e}") from e

        try:
            if resp.status_code != 200:
                raise RegistrationAttemptError(
                    f"registration failed with status {resp.status_code}",
                    status_code=resp.status_code,
                )

            try:
                return RegistrationResponse.model_validate_json(resp.content)
            except ValidationError as e:
                raise RegistrationAttemptError(
                    f"failed to decode registration response: {e}",
                    status_code=resp.status_code,
                ) from e
        finally:
            resp.close()

    def heartbeat(self, request: HeartbeatRequest):
        """
        POST one heartbeat

        Raises:
            HeartbeatError: serialization or transport error, or non-200 status
        """
        try:
            body = request.to_json()
        except ValueError as e:
            raise HeartbeatError(f"failed to marshal heartbeat request: {e}") from e

        try:
            resp = self.session.post(
                self.heartbeat_url,
                data=body,
                headers=JSON_HEADERS,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise HeartbeatError(f"failed to send heartbeat: {e}") from e

        resp.close()

        if resp.status_code != 200:
            raise HeartbeatError(
                f"received non-ok heartbeat response: {resp.status_code}",
                status_code=resp.status_code,
            )
