"""Caller classification from user-agent and device-type headers.

Every request is partitioned into one of three classes:
- Bot: known crawler fingerprint, or a scripting/HTTP-tool signature
- TrustedDevice: exhibit hardware, must still present a bearer token
- Generic: everything else (phones, desktop browsers)

A trusted-device signature overrides a suspicious-tool match. Crawler
fingerprints are never overridden.
"""

from dataclasses import dataclass
from enum import Enum

from nfc_router.config.settings import Settings


class RequestClass(str, Enum):
    BOT = "bot"
    TRUSTED_DEVICE = "trusted_device"
    GENERIC = "generic"


@dataclass(frozen=True)
class SignatureSet:
    bot: tuple[str, ...] = ()
    suspicious_tools: tuple[str, ...] = ()
    trusted_devices: tuple[str, ...] = ()
    trusted_device_types: tuple[str, ...] = ()
    case_sensitive: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "SignatureSet":
        return cls(
            bot=tuple(settings.bot_signatures_list),
            suspicious_tools=tuple(settings.suspicious_tool_signatures_list),
            trusted_devices=tuple(settings.trusted_device_signatures_list),
            trusted_device_types=tuple(settings.trusted_device_types_list),
            case_sensitive=settings.signature_case_sensitive,
        )

    def normalize(self, value: str) -> str:
        return value if self.case_sensitive else value.casefold()

    def patterns(self, name: str) -> tuple[str, ...]:
        return tuple(self.normalize(s) for s in getattr(self, name))


def _contains_any(haystack: str, needles: tuple[str, ...]) -> bool:
    return any(needle in haystack for needle in needles)


def is_trusted_device(user_agent: str, device_type: str | None, signatures: SignatureSet) -> bool:
    ua = signatures.normalize(user_agent)
    if _contains_any(ua, signatures.patterns("trusted_devices")):
        return True
    if device_type:
        return signatures.normalize(device_type.strip()) in signatures.patterns("trusted_device_types")
    return False


def classify(
    user_agent: str | None,
    device_type: str | None,
    signatures: SignatureSet,
) -> RequestClass:
    """Classify a caller. Pure function of its inputs."""
    ua = signatures.normalize(user_agent or "")

    if _contains_any(ua, signatures.patterns("bot")):
        return RequestClass.BOT

    if is_trusted_device(user_agent or "", device_type, signatures):
        return RequestClass.TRUSTED_DEVICE

    if _contains_any(ua, signatures.patterns("suspicious_tools")):
        return RequestClass.BOT

    return RequestClass.GENERIC
