"""
contactshare identity record model
Pydantic v2 model for the contact exchanged between two parties
"""

import re
import ipaddress
from typing import Tuple
from pydantic import BaseModel, Field, field_validator, ConfigDict

from ..crypto import compute_key_id

# 3-24 characters, no leading/trailing space or punctuation
NAME_PATTERN = re.compile(r"[\w][\w _-]{1,22}[\w]", re.ASCII)
MAC_PATTERN = re.compile(r"([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}")
HOSTNAME_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
HOSTNAME_PATTERN = re.compile(rf"{HOSTNAME_LABEL}(?:\.{HOSTNAME_LABEL})*\.?")
MAX_HOSTNAME_LENGTH = 253


def is_valid_name(name: str) -> bool:
    """Check for a display name without lookalike unicode or padding"""
    return bool(name) and NAME_PATTERN.fullmatch(name) is not None


def is_ip_address(address: str) -> bool:
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


def is_mac_address(address: str) -> bool:
    return MAC_PATTERN.fullmatch(address) is not None


def is_hostname(address: str) -> bool:
    return len(address) <= MAX_HOSTNAME_LENGTH and HOSTNAME_PATTERN.fullmatch(address) is not None


def is_valid_address(address: str) -> bool:
    return is_ip_address(address) or is_mac_address(address) or is_hostname(address)


class Contact(BaseModel):
    """
    Identity record exchanged out-of-band

    The public key is the sole identity: two contacts with equal keys are the
    same party (see same_party). Equality compares every field.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Display name, not unique")
    public_key: bytes = Field(..., description="Raw identity public key")
    addresses: Tuple[str, ...] = Field(default_factory=tuple, description="Network addresses in priority order")
    verified: bool = Field(default=False, description="Local trust annotation")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not is_valid_name(v):
            raise ValueError('name must be 3-24 word characters, spaces, "_" or "-"')
        return v

    @field_validator('addresses')
    @classmethod
    def validate_addresses(cls, v):
        seen = set()
        for address in v:
            if not is_valid_address(address):
                raise ValueError(f'invalid address: {address}')
            if address in seen:
                raise ValueError(f'duplicate address: {address}')
            seen.add(address)
        return v

    @property
    def key_id(self) -> str:
        """Stable fingerprint of the public key"""
        return compute_key_id(self.public_key)

    def same_party(self, other: "Contact") -> bool:
        """Check whether both records identify the same party"""
        return self.public_key == other.public_key
