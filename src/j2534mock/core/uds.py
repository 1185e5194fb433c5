"""
UDS service naming helpers used for trace output.

Pure lookups, no state. The engine itself only cares about the numeric
service and subfunction bytes.
"""

from __future__ import annotations

from typing import Any


SID_DIAGNOSTIC_SESSION_CONTROL = 0x10
SID_SECURITY_ACCESS = 0x27
SID_REQUEST_DOWNLOAD = 0x34

# Positive response SID is request SID + 0x40.
POSITIVE_RESPONSE_OFFSET = 0x40

# SecurityAccess write-level subfunctions.
SA_REQUEST_SEED = 0x03
SA_SEND_KEY = 0x04


UDS_SERVICES: dict[int, str] = {
    0x10: "DiagnosticSessionControl",
    0x11: "ECUReset",
    0x14: "ClearDiagnosticInformation",
    0x19: "ReadDTCInformation",
    0x22: "ReadDataByIdentifier",
    0x23: "ReadMemoryByAddress",
    0x27: "SecurityAccess",
    0x28: "CommunicationControl",
    0x2E: "WriteDataByIdentifier",
    0x31: "RoutineControl",
    0x34: "RequestDownload",
    0x35: "RequestUpload",
    0x36: "TransferData",
    0x37: "RequestTransferExit",
    0x3D: "WriteMemoryByAddress",
    0x3E: "TesterPresent",
    0x85: "ControlDTCSetting",
}

UDS_SESSION_TYPES: dict[int, str] = {
    0x01: "defaultSession",
    0x02: "programmingSession",
    0x03: "extendedDiagnosticSession",
    0x04: "safetySystemDiagnosticSession",
}


def service_name(sid: int) -> str:
    return UDS_SERVICES.get(sid, f"Unknown_0x{sid:02X}")


def describe_request(sid: int, subfunction: int | None, payload: bytes) -> dict[str, Any]:
    """Best-effort, json-serializable description of a request for tracing."""
    out: dict[str, Any] = {
        "sid": sid,
        "service_name": service_name(sid),
        "subfunction": subfunction,
        "payload_len": len(payload),
    }
    if subfunction is None:
        return out

    if sid == SID_DIAGNOSTIC_SESSION_CONTROL:
        session = subfunction & 0x7F
        out["session_name"] = UDS_SESSION_TYPES.get(session, f"vendorSpecific_0x{session:02X}")
    elif sid == SID_SECURITY_ACCESS:
        out["is_request_seed"] = (subfunction % 2) == 1
        out["is_send_key"] = (subfunction % 2) == 0
        out["security_level"] = (subfunction + 1) // 2
    return out
