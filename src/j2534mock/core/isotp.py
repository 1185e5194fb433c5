from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


IsoTpFrameType = Literal["sf", "ff", "cf", "fc"]


@dataclass(frozen=True)
class IsoTpParsed:
    frame_type: IsoTpFrameType
    payload: bytes
    total_len: int | None = None


def parse_isotp_frame(data: bytes) -> IsoTpParsed:
    """
    Classify one CAN frame by its ISO-TP PCI nibble.

    Single frames keep only the bytes their length covers; bus padding is
    dropped. Other frame types carry no complete request and are returned
    with an empty payload.
    """
    if len(data) < 1:
        raise ValueError("ISO-TP frame requires at least 1 byte")

    pci = data[0]
    ftype = (pci >> 4) & 0xF

    if ftype == 0x0:
        length = pci & 0xF
        if length == 0:
            # CAN FD escape: length in the next byte.
            if len(data) < 2:
                raise ValueError("ISO-TP SF extended length requires 2 bytes")
            length = int(data[1])
            if length <= 0:
                raise ValueError("ISO-TP SF extended length must be > 0")
            payload = data[2 : 2 + length]
        else:
            payload = data[1 : 1 + length]
        return IsoTpParsed(frame_type="sf", payload=bytes(payload), total_len=len(payload))

    if ftype == 0x1:
        return IsoTpParsed(frame_type="ff", payload=b"")
    if ftype == 0x2:
        return IsoTpParsed(frame_type="cf", payload=b"")
    if ftype == 0x3:
        return IsoTpParsed(frame_type="fc", payload=b"")

    raise ValueError(f"Unknown ISO-TP frame type nibble: {ftype}")
