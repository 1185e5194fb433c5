from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from j2534mock.core.frame import DiagnosticRequest
from j2534mock.core.keys import FIXED_SEED, KeyObservation, observe_key
from j2534mock.core.uds import (
    POSITIVE_RESPONSE_OFFSET,
    SA_REQUEST_SEED,
    SA_SEND_KEY,
    SID_DIAGNOSTIC_SESSION_CONTROL,
    SID_REQUEST_DOWNLOAD,
    SID_SECURITY_ACCESS,
)


Responder = Callable[[DiagnosticRequest], bytes]
KeyObserver = Callable[[DiagnosticRequest], KeyObservation]


@dataclass(frozen=True)
class Rule:
    """
    One row of the response table.

    - service_id / subfunction: None matches any value
    - min_payload: trailing bytes (after service + subfunction) required to match
    - observe: side call run before responding; never changes the response
    """

    rule_id: str
    service_id: int | None
    respond: Responder
    subfunction: int | None = None
    min_payload: int = 0
    observe: KeyObserver | None = None

    def matches(self, request: DiagnosticRequest) -> bool:
        if self.service_id is not None and request.service_id != self.service_id:
            return False
        if self.subfunction is not None and request.subfunction != self.subfunction:
            return False
        return len(request.payload) >= self.min_payload


@dataclass(frozen=True)
class RuleResult:
    rule_id: str
    response: bytes
    observation: KeyObservation | None = None


def positive_echo(request: DiagnosticRequest) -> bytes:
    sid = (request.service_id + POSITIVE_RESPONSE_OFFSET) & 0xFF
    if request.subfunction is None:
        return bytes([sid])
    return bytes([sid, request.subfunction])


def _fixed(data: bytes) -> Responder:
    data = bytes(data)

    def _respond(_request: DiagnosticRequest) -> bytes:
        return data

    return _respond


def default_rules(seed: int = FIXED_SEED) -> list[Rule]:
    seed_bytes = (seed & 0xFFFF).to_bytes(2, "big")

    def _observe(request: DiagnosticRequest) -> KeyObservation:
        return observe_key(request.payload[:2], seed=seed)

    return [
        Rule(
            rule_id="session_control",
            service_id=SID_DIAGNOSTIC_SESSION_CONTROL,
            respond=positive_echo,
        ),
        Rule(
            rule_id="request_seed",
            service_id=SID_SECURITY_ACCESS,
            subfunction=SA_REQUEST_SEED,
            respond=_fixed(bytes([0x67, SA_REQUEST_SEED]) + seed_bytes),
        ),
        # A sendKey with fewer than 2 key bytes does not match here and
        # ends up on the generic rule.
        Rule(
            rule_id="send_key",
            service_id=SID_SECURITY_ACCESS,
            subfunction=SA_SEND_KEY,
            min_payload=2,
            respond=_fixed(bytes([0x67, SA_SEND_KEY])),
            observe=_observe,
        ),
        Rule(
            rule_id="request_download",
            service_id=SID_REQUEST_DOWNLOAD,
            respond=_fixed(bytes([0x74, 0x20, 0x0F])),
        ),
        Rule(rule_id="generic_positive", service_id=None, respond=positive_echo),
    ]


def evaluate(request: DiagnosticRequest, rules: list[Rule]) -> RuleResult:
    """First matching rule wins. Always yields a response."""
    for rule in rules:
        if not rule.matches(request):
            continue
        observation = rule.observe(request) if rule.observe is not None else None
        return RuleResult(rule_id=rule.rule_id, response=rule.respond(request), observation=observation)
    return RuleResult(rule_id="generic_positive", response=positive_echo(request))
