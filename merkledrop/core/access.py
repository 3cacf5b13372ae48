"""
Access control for administrative operations.

Who counts as "the administrator" is decided outside the core. The core only
asks an injected AccessControl whether a caller may perform admin operations,
at the top of each such operation.
"""

from abc import ABC, abstractmethod
from typing import Callable, Union

from merkledrop.core.errors import UnauthorizedError
from merkledrop.crypto import bytes_to_hex, to_address


class AccessControl(ABC):
    """Capability check for admin-only operations."""

    @abstractmethod
    def is_admin(self, caller: bytes) -> bool:
        """Return True if caller may run admin operations."""

    def require_admin(self, caller: Union[bytes, str], operation: str = "") -> bytes:
        """
        Raise UnauthorizedError unless caller is an administrator.

        Returns:
            The normalised 20-byte caller address
        """
        try:
            address = to_address(caller)
        except ValueError:
            raise UnauthorizedError(f"Invalid caller for {operation or 'admin operation'}") from None

        if not self.is_admin(address):
            raise UnauthorizedError(
                f"Caller {bytes_to_hex(address)} is not the owner",
                details={"caller": bytes_to_hex(address), "operation": operation},
            )
        return address


class OwnerAccessControl(AccessControl):
    """Single owner address is the only administrator."""

    def __init__(self, owner: Union[bytes, str]):
        self.owner = to_address(owner)

    def is_admin(self, caller: bytes) -> bool:
        return caller == self.owner


class PredicateAccessControl(AccessControl):
    """Delegates the decision to an arbitrary predicate (roles, multisig, ...)."""

    def __init__(self, predicate: Callable[[bytes], bool]):
        self.predicate = predicate

    def is_admin(self, caller: bytes) -> bool:
        return bool(self.predicate(caller))
