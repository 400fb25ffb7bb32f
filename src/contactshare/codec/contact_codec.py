"""
contactshare Contact Codec
Canonical encode/decode between a Contact and its interchange payload
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..crypto import KeyValidator, validate_ed25519_public_key
from ..errors import (
    EncodingError,
    InvalidFieldError,
    InvalidKeyError,
    MalformedPayloadError,
    MissingFieldError,
)
from ..models.contact import Contact
from .canonical_utils import CanonicalizationError, canonical_json, stable_hash

logger = logging.getLogger(__name__)

FIELD_NAME = "name"
FIELD_PUBLIC_KEY = "publicKey"
FIELD_ADDRESSES = "addresses"
FIELD_VERIFIED = "verified"

# Payload field for each Contact attribute
_MODEL_TO_PAYLOAD = {
    "name": FIELD_NAME,
    "public_key": FIELD_PUBLIC_KEY,
    "addresses": FIELD_ADDRESSES,
    "verified": FIELD_VERIFIED,
}


class ContactCodec:
    """
    Pure encoder/decoder for contact payloads

    Payloads are canonical JSON: sorted keys, compact separators, addresses in
    the order the contact lists them. `verified` is only written when true.
    """

    def __init__(self, key_validator: Optional[KeyValidator] = None):
        self._validate_key = key_validator or validate_ed25519_public_key

    def encode(self, contact: Contact) -> str:
        """
        Encode a contact into its canonical payload

        Raises:
            EncodingError: If the contact carries no public key, a key the
                configured validator rejects, or values with no canonical form
        """
        if not contact.public_key:
            raise EncodingError("Contact has no public key")
        try:
            self._validate_key(contact.public_key)
        except InvalidKeyError as e:
            raise EncodingError(f"Contact public key rejected: {e}") from e

        obj: Dict[str, Any] = {
            FIELD_NAME: contact.name,
            FIELD_PUBLIC_KEY: base64.b64encode(contact.public_key).decode('ascii'),
            FIELD_ADDRESSES: list(contact.addresses),
        }
        if contact.verified:
            obj[FIELD_VERIFIED] = True

        try:
            return canonical_json(obj)
        except CanonicalizationError as e:
            raise EncodingError(f"Contact has no canonical form: {e}") from e

    def decode(self, payload: Union[str, bytes]) -> Contact:
        """
        Decode a payload into a contact

        Unknown keys are ignored.

        Raises:
            MalformedPayloadError: If the payload is not a JSON object
            MissingFieldError: If a required field is absent
            InvalidKeyError: If the public key is not usable
            InvalidFieldError: If another field is present but invalid
        """
        try:
            obj = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError(f"Payload is not valid JSON: {e}") from e

        if not isinstance(obj, dict):
            raise MalformedPayloadError(f"Payload must be a JSON object, got {type(obj).__name__}")

        public_key = self._decode_public_key(obj)

        for field in (FIELD_NAME, FIELD_ADDRESSES):
            if field not in obj:
                raise MissingFieldError(field)

        name = obj[FIELD_NAME]
        if not isinstance(name, str):
            raise InvalidFieldError(FIELD_NAME, "must be a string")

        addresses = obj[FIELD_ADDRESSES]
        if not isinstance(addresses, list) or not all(isinstance(a, str) for a in addresses):
            raise InvalidFieldError(FIELD_ADDRESSES, "must be a list of strings")

        verified = obj.get(FIELD_VERIFIED, False)
        if not isinstance(verified, bool):
            raise InvalidFieldError(FIELD_VERIFIED, "must be a boolean")

        try:
            return Contact(
                name=name,
                public_key=public_key,
                addresses=tuple(addresses),
                verified=verified,
            )
        except ValidationError as e:
            error = e.errors()[0]
            attr = error["loc"][0] if error.get("loc") else "contact"
            raise InvalidFieldError(_MODEL_TO_PAYLOAD.get(attr, str(attr)), error["msg"]) from e

    def fingerprint(self, payload: Union[str, bytes]) -> str:
        """Stable hash of the canonical form of a payload"""
        contact = self.decode(payload)
        return stable_hash(self.encode(contact))

    def _decode_public_key(self, obj: Dict[str, Any]) -> bytes:
        value = obj.get(FIELD_PUBLIC_KEY)
        if value is None or value == "":
            raise MissingFieldError(FIELD_PUBLIC_KEY)
        if not isinstance(value, str):
            raise InvalidKeyError("Public key must be a base64 string")

        try:
            public_key = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidKeyError(f"Public key is not valid base64: {e}") from e

        self._validate_key(public_key)
        return public_key
