from enum import Enum


class AuthorizationStatus(str, Enum):
    """Location permission reported by the device."""

    not_determined = "not_determined"
    denied = "denied"
    restricted = "restricted"
    when_in_use = "when_in_use"
    always = "always"

    @property
    def allows_recording(self) -> bool:
        return self in (AuthorizationStatus.when_in_use, AuthorizationStatus.always)
