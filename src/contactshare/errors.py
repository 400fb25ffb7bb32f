"""
contactshare error taxonomy

Fatal errors terminate an exchange session; decode errors are returned to the
caller of decode so a scanning flow can retry on a fresh scan.
"""

from typing import Optional


class ContactShareError(Exception):
    """Base class for all contactshare errors"""
    pass


class ConnectionFailedError(ContactShareError):
    """Raised when the identity registry cannot be reached"""
    pass


class DuplicateConnectError(ContactShareError):
    """Raised when connect() is called while a connection is pending or held"""
    pass


class EncodingError(ContactShareError):
    """Raised when a contact cannot be encoded into a payload"""
    pass


class DecodeError(ContactShareError):
    """Base class for non-fatal payload decode errors"""
    pass


class MalformedPayloadError(DecodeError):
    """Raised when a payload is not a well-formed JSON object"""
    pass


class MissingFieldError(DecodeError):
    """Raised when a required payload field is absent"""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class InvalidFieldError(DecodeError):
    """Raised when a payload field is present but unusable"""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid field {field}: {reason}")


class InvalidKeyError(DecodeError):
    """Raised when a public key has the wrong encoding, length or format"""
    pass


class RegistryReadError(ContactShareError):
    """Base class for failures reading from a registry handle"""
    pass


class IdentityUnavailableError(RegistryReadError):
    """Raised when the registry holds no local identity"""
    pass


class ContactNotFoundError(RegistryReadError):
    """Raised when the selected contact is not in the registry"""

    def __init__(self, key_id: str, message: Optional[str] = None):
        self.key_id = key_id
        super().__init__(message or f"Contact not found: {key_id}")


class RegistryHandleReleasedError(RegistryReadError):
    """Raised when reading through a handle after its connection was released"""
    pass


class SessionStateError(ContactShareError):
    """Raised when a session operation is requested in a state that does not allow it"""
    pass
