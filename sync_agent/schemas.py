# sync_agent/schemas.py
"""
Wire schemas exchanged with the controller

Field names on the wire are camelCase; Python attributes are snake_case.
Optional fields that are None are left out of the JSON body entirely.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .collectors.local_identity import AgentIdentity


@dataclass(frozen=True)
class PayloadOptions:
    """Controls which optional fields deployments expect on the wire"""
    include_service_name: bool = True
    include_rules_version: bool = True
    honor_interval_hint: bool = True


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


# --- Registration ---
class RegistrationRequest(_WireModel):
    ip_address: str = Field(alias="ipAddress")
    port: int
    namespace: str
    service_name: Optional[str] = Field(default=None, alias="serviceName")

    @classmethod
    def from_identity(
        cls,
        identity: AgentIdentity,
        options: PayloadOptions = PayloadOptions(),
    ) -> "RegistrationRequest":
        return cls(
            ip_address=identity.ip_address,
            port=identity.port,
            namespace=identity.namespace,
            service_name=identity.service_name if options.include_service_name else None,
        )


class RegistrationResponse(_WireModel):
    # Minutes; absent when the controller leaves the interval to the agent
    heart_beat_interval_minutes: Optional[int] = Field(
        default=None, alias="heartBeatIntervalMinutes"
    )
    # Opaque rule-set document, handed to the rules store as-is
    verification_rules: Optional[Any] = Field(default=None, alias="verificationRules")


# --- Heartbeat ---
class HeartbeatRequest(_WireModel):
    ip_address: str = Field(alias="ipAddress")
    port: int
    namespace: str
    service_name: Optional[str] = Field(default=None, alias="serviceName")
    rules_version_id: Optional[str] = Field(default=None, alias="rulesVersionId")

    @classmethod
    def from_identity(
        cls,
        identity: AgentIdentity,
        rules_version_id: Optional[str],
        options: PayloadOptions = PayloadOptions(),
    ) -> "HeartbeatRequest":
        return cls(
            ip_address=identity.ip_address,
            port=identity.port,
            namespace=identity.namespace,
            service_name=identity.service_name if options.include_service_name else None,
            rules_version_id=rules_version_id if options.include_rules_version else None,
        )
