"""Data models for the relay pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

RELAY_POSTFIX = "Relayed from: {source}"

# Inbound form field -> (record attribute, default when the field is absent)
FORM_DEFAULTS: dict[str, tuple[str, str]] = {
    "from": ("source", "guest"),
    "to": ("destination", "UNKNOWN_DEST"),
    "message": ("message", ""),
    "type": ("type", "UNKNOWN_TYPE"),
}


@dataclass(frozen=True)
class RelayMessage:
    """Normalized inbound text, one per webhook request."""

    source: str
    destination: str
    message: str
    type: str


def apply_defaults(form: Mapping[str, str]) -> RelayMessage:
    """Build a RelayMessage from raw form fields.

    Absent fields take their default; a field that is present but empty
    keeps the empty value. ``form`` is never modified.
    """
    values = {
        attr: form[field] if field in form else default
        for field, (attr, default) in FORM_DEFAULTS.items()
    }
    return RelayMessage(**values)


@dataclass(frozen=True)
class RewrittenMessage:
    """Outbound envelope after the source/destination swap."""

    source: str
    destination: str
    message: str
    original_source: str


def rewrite(message: RelayMessage, target: str) -> RewrittenMessage:
    """Swap the envelope so the relay number poses as the sender.

    ``type`` is not carried over.
    """
    postfix = RELAY_POSTFIX.format(source=message.source)
    return RewrittenMessage(
        source=message.destination,
        destination=target,
        message=f"{message.message}\n- {postfix}",
        original_source=message.source,
    )


class RelayOutcome(str, Enum):
    """Terminal state of one pipeline run."""

    NO_RELAY = "no_relay"
    LOG_ONLY = "log_only"
    TRANSPORT_ERROR = "transport_error"
    BAD_STATUS = "bad_status"
    DECODE_ERROR = "decode_error"
    EMPTY_GUID = "empty_guid"
    DELIVERED = "delivered"


# --- Upstream wire models ---


class DeliveryRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_did: str
    to_did: str
    message: str

    @classmethod
    def from_rewritten(cls, rewritten: RewrittenMessage) -> DeliveryRequest:
        return cls(
            from_did=rewritten.source.strip(),
            to_did=rewritten.destination.strip(),
            message=rewritten.message,
        )


class DeliveryResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    code: int | None = None
    status: str | None = None
    data: Any = None
    guid: str | None = None

    @property
    def accepted(self) -> bool:
        """A non-empty guid means the upstream queued the text."""
        return bool(self.guid)
