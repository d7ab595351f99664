from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from huereset.core.exceptions import ActionRejected


###############################################################################
# 1. STATES -------------------------------------------------------------------
###############################################################################

class RequestState(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SUPERSEDED = "superseded"


class WatchState(Enum):
    WATCHING = "watching"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    SUPERSEDED = "superseded"


class BridgeEventType(Enum):
    DEVICE_LEAVE = "device_leave"
    DEVICE_JOINED = "device_joined"
    DEVICE_ANNOUNCE = "device_announce"
    DEVICE_INTERVIEW = "device_interview"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "BridgeEventType":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


###############################################################################
# 2. RESET REQUEST ------------------------------------------------------------
###############################################################################

@dataclass(slots=True)
class ResetRequest:
    """The single in-flight factory reset owned by the orchestrator."""
    serial: str
    source: str
    transaction: str
    created_at: float
    state: RequestState = RequestState.PENDING

    def to_payload(self, action: str, extended_pan_id: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"serial_numbers": [self.serial]}
        if extended_pan_id:
            params["extended_pan_id"] = extended_pan_id
        return {"action": action, "params": params, "transaction": self.transaction}


###############################################################################
# 3. ACTION RESPONSE ----------------------------------------------------------
###############################################################################

@dataclass(frozen=True, slots=True)
class ActionResponse:
    """Reply published by the bridge on `bridge/response/action`."""
    status: str
    transaction: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def raise_for_status(self) -> None:
        if not self.ok:
            raise ActionRejected(self.error or f"bridge returned status {self.status!r}")

    # ---------- factory --------------------------------------------------- #
    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ActionResponse":
        transaction = payload.get("transaction")
        error = payload.get("error")
        return cls(
            status      = str(payload.get("status", "")).lower(),
            transaction = str(transaction) if transaction not in (None, "") else None,
            error       = str(error) if error is not None else None,
        )


###############################################################################
# 4. BRIDGE EVENT -------------------------------------------------------------
###############################################################################

@dataclass(frozen=True, slots=True)
class BridgeEvent:
    """Network telemetry published on `bridge/event`."""
    type: BridgeEventType
    raw_type: str = ""
    ieee_address: Optional[str] = None
    friendly_name: Optional[str] = None
    status: Optional[str] = None

    # ---------- factory --------------------------------------------------- #
    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "BridgeEvent":
        data = payload.get("data")
        if not isinstance(data, dict):
            data = {}
        raw_type = str(payload.get("type", ""))
        return cls(
            type          = BridgeEventType.parse(raw_type),
            raw_type      = raw_type,
            ieee_address  = _optional_str(data.get("ieee_address")),
            friendly_name = _optional_str(data.get("friendly_name")),
            status        = _optional_str(data.get("status")),
        )


###############################################################################
# 5. REJOIN WATCH -------------------------------------------------------------
###############################################################################

@dataclass(slots=True)
class RejoinWatch:
    """Correlates leave/join telemetry for the device that was just reset."""
    serial: str
    source: str
    started_at: float
    expected_ieee: Optional[str] = None
    state: WatchState = WatchState.WATCHING
    result: Optional[asyncio.Future] = field(default=None, repr=False, compare=False)
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False, compare=False)

    @property
    def active(self) -> bool:
        return self.state is WatchState.WATCHING


###############################################################################
# 6. HELPER PARSERS -----------------------------------------------------------
###############################################################################

def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
