"""
J2534 PassThru surface of the mock.

Lifecycle calls (open/connect/filters/ioctl/...) are fixed-reply stubs that
always succeed so the tool under test gets past setup. The interesting part
is write_msgs -> rule table -> mailbox -> read_msgs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from j2534mock.core.config import MockConfig
from j2534mock.core.frame import PassThruMsg, decode_request, encode_response
from j2534mock.core.keys import KeyObservation
from j2534mock.core.mailbox import ResponseMailbox
from j2534mock.core.rules import Rule, RuleResult, default_rules, evaluate
from j2534mock.core.trace import NullTraceSink, TraceSink, hex_bytes, utc_ts
from j2534mock.core.uds import describe_request


STATUS_NOERROR = 0x00


@dataclass(frozen=True)
class VersionInfo:
    firmware: str
    dll: str
    api: str


@dataclass
class MockState:
    """Everything the write and read paths share. One instance per emulated device."""

    rules: list[Rule]
    mailbox: ResponseMailbox = field(default_factory=ResponseMailbox)
    last_observation: KeyObservation | None = None

    # stats
    writes: int = 0
    reads: int = 0
    dropped: int = 0
    responses: int = 0
    overwritten: int = 0
    key_observations: int = 0
    trace_errors: int = 0

    @classmethod
    def from_config(cls, config: MockConfig) -> MockState:
        return cls(rules=default_rules(config.seed))

    def summary(self) -> dict[str, Any]:
        return {
            "writes": self.writes,
            "reads": self.reads,
            "dropped": self.dropped,
            "responses": self.responses,
            "overwritten": self.overwritten,
            "key_observations": self.key_observations,
            "trace_errors": self.trace_errors,
            "pending": self.mailbox.has_pending,
            "last_observation": self.last_observation.to_dict() if self.last_observation else None,
        }


def _raw_data(msg: PassThruMsg | bytes) -> bytes:
    if isinstance(msg, PassThruMsg):
        return bytes(msg.data)
    return bytes(msg)


class PassThruDevice:
    def __init__(
        self,
        config: MockConfig | None = None,
        *,
        state: MockState | None = None,
        trace: TraceSink | None = None,
    ) -> None:
        self._cfg = config or MockConfig()
        self._state = state or MockState.from_config(self._cfg)
        self._trace = trace or NullTraceSink()

    @property
    def config(self) -> MockConfig:
        return self._cfg

    @property
    def state(self) -> MockState:
        return self._state

    def _log(self, event: str, **fields: Any) -> None:
        # A broken sink never fails the tool under test; the miss is counted.
        try:
            self._trace.log({"ts": utc_ts(), "event": event, **fields})
        except (OSError, TypeError, ValueError):
            self._state.trace_errors += 1

    def _lifecycle(self, call: str, **args: Any) -> None:
        self._log("lifecycle", call=call, args=args)

    # ---- lifecycle stubs ----

    def open(self, name: str | None = None) -> tuple[int, int]:
        self._lifecycle("PassThruOpen", name=name)
        return STATUS_NOERROR, self._cfg.device_id

    def close(self, device_id: int) -> int:
        self._lifecycle("PassThruClose", device_id=device_id)
        return STATUS_NOERROR

    def connect(self, device_id: int, protocol_id: int, flags: int = 0, baud_rate: int = 500000) -> tuple[int, int]:
        self._lifecycle("PassThruConnect", protocol_id=protocol_id, baud_rate=baud_rate)
        return STATUS_NOERROR, self._cfg.channel_id

    def disconnect(self, channel_id: int) -> int:
        self._lifecycle("PassThruDisconnect", channel_id=channel_id)
        return STATUS_NOERROR

    def start_msg_filter(
        self,
        channel_id: int,
        filter_type: int,
        mask: PassThruMsg | None = None,
        pattern: PassThruMsg | None = None,
        flow_control: PassThruMsg | None = None,
    ) -> tuple[int, int]:
        self._lifecycle("PassThruStartMsgFilter", channel_id=channel_id, filter_type=filter_type)
        return STATUS_NOERROR, self._cfg.filter_id

    def stop_msg_filter(self, channel_id: int, filter_id: int) -> int:
        return STATUS_NOERROR

    def set_programming_voltage(self, device_id: int, pin_number: int, voltage: int) -> int:
        return STATUS_NOERROR

    def read_version(self, device_id: int) -> tuple[int, VersionInfo]:
        v = self._cfg.versions
        return STATUS_NOERROR, VersionInfo(firmware=v["firmware"], dll=v["dll"], api=v["api"])

    def get_last_error(self) -> tuple[int, str]:
        return STATUS_NOERROR, "No error"

    def ioctl(self, handle_id: int, ioctl_id: int, input_data: Any = None) -> tuple[int, Any]:
        self._lifecycle("PassThruIoctl", ioctl_id=ioctl_id)
        return STATUS_NOERROR, None

    # ---- request/response path ----

    def handle_frame(self, raw: bytes) -> RuleResult | None:
        """Decode, synthesize, and store the response for one request frame."""
        state = self._state
        self._log("tx", len=len(raw), data=hex_bytes(raw))

        request = decode_request(raw)
        if request is None:
            state.dropped += 1
            self._log("drop", reason="short_frame", len=len(raw))
            return None

        result = evaluate(request, state.rules)
        self._log(
            "decoded",
            rule_id=result.rule_id,
            arbitration_id=request.arbitration_id,
            **describe_request(request.service_id, request.subfunction, request.payload),
        )
        if result.observation is not None:
            state.last_observation = result.observation
            state.key_observations += 1
            self._log("key_observation", **result.observation.to_dict())

        response = encode_response(result.response, arbitration_id=self._cfg.ecu_id, protocol_id=self._cfg.protocol_id)
        if state.mailbox.store(response):
            state.overwritten += 1
        state.responses += 1
        return result

    def write_msgs(self, channel_id: int, msgs: list[PassThruMsg | bytes], timeout_ms: int = 0) -> tuple[int, int]:
        if not msgs:
            return STATUS_NOERROR, 0
        self._state.writes += 1
        # Only the first frame of a batch is interpreted.
        self.handle_frame(_raw_data(msgs[0]))
        return STATUS_NOERROR, len(msgs)

    def read_msgs(self, channel_id: int, max_msgs: int = 1, timeout_ms: int = 0) -> tuple[int, list[PassThruMsg]]:
        if max_msgs <= 0:
            return STATUS_NOERROR, []
        msg = self._state.mailbox.take()
        if msg is None:
            return STATUS_NOERROR, []
        self._state.reads += 1
        self._log("rx", len=msg.data_size, data=hex_bytes(msg.data))
        return STATUS_NOERROR, [msg]

    def transact(self, raw: bytes, channel_id: int | None = None) -> PassThruMsg | None:
        """Write one frame and read back whatever is pending."""
        channel_id = self._cfg.channel_id if channel_id is None else channel_id
        self.write_msgs(channel_id, [raw])
        _status, msgs = self.read_msgs(channel_id, 1)
        return msgs[0] if msgs else None
