from __future__ import annotations

from dataclasses import dataclass


# J2534 ProtocolID for ISO 15765 (CAN + ISO-TP).
ISO15765 = 6

# PASSTHRU_MSG.Data capacity in bytes.
PASSTHRU_DATA_SIZE = 4128

ARB_ID_LEN = 4
ECU_RESPONSE_ID = 0x7E8
TESTER_REQUEST_ID = 0x7E0

# id(4) + length(1) + service id(1)
MIN_REQUEST_LEN = ARB_ID_LEN + 2


@dataclass(frozen=True)
class DiagnosticRequest:
    arbitration_id: int
    service_id: int
    subfunction: int | None = None
    payload: bytes = b""


@dataclass(frozen=True)
class PassThruMsg:
    """
    One J2534 message as seen by the tool under test.

    `data` is length-tagged: it holds only the meaningful bytes
    (arbitration id + ISO-TP length + diagnostic bytes). The fixed-size,
    zero-padded buffer is produced by `to_buffer`.
    """

    data: bytes
    protocol_id: int = ISO15765
    rx_status: int = 0
    tx_flags: int = 0
    timestamp: int = 0
    extra_data_index: int = 0

    @property
    def data_size(self) -> int:
        return len(self.data)

    @property
    def arbitration_id(self) -> int | None:
        if len(self.data) < ARB_ID_LEN:
            return None
        return int.from_bytes(self.data[:ARB_ID_LEN], "big")

    @property
    def payload(self) -> bytes:
        """Length byte + diagnostic bytes."""
        return self.data[ARB_ID_LEN:]

    def to_buffer(self, frame_size: int = PASSTHRU_DATA_SIZE) -> bytes:
        frame_size = int(frame_size)
        if len(self.data) >= frame_size:
            return bytes(self.data)
        return bytes(self.data) + bytes(frame_size - len(self.data))


def decode_request(raw: bytes) -> DiagnosticRequest | None:
    """
    Decode a tester frame: id(4, big-endian) | length | sid | [sub] | payload...

    Returns None for frames too short to carry a service id. The length byte
    and the arbitration id are taken as-is; neither is validated.
    """
    raw = bytes(raw)
    if len(raw) < MIN_REQUEST_LEN:
        return None

    arbitration_id = int.from_bytes(raw[:ARB_ID_LEN], "big")
    service_id = raw[5]
    subfunction = raw[6] if len(raw) >= 7 else None
    return DiagnosticRequest(
        arbitration_id=arbitration_id,
        service_id=service_id,
        subfunction=subfunction,
        payload=raw[7:],
    )


def _frame(arbitration_id: int, diag: bytes) -> bytes:
    diag = bytes(diag)
    if len(diag) > 0xFF:
        raise ValueError("single-frame payload supports up to 255 bytes")
    return int(arbitration_id & 0xFFFFFFFF).to_bytes(ARB_ID_LEN, "big") + bytes([len(diag)]) + diag


def encode_response(
    resp_bytes: bytes,
    *,
    arbitration_id: int = ECU_RESPONSE_ID,
    protocol_id: int = ISO15765,
) -> PassThruMsg:
    return PassThruMsg(data=_frame(arbitration_id, resp_bytes), protocol_id=protocol_id)


def build_request(diag: bytes, *, arbitration_id: int = TESTER_REQUEST_ID) -> bytes:
    """Build a tester-side frame, the same layout the tool under test writes."""
    return _frame(arbitration_id, diag)
