# agency_api/services/permissions.py

from dataclasses import dataclass, field
from typing import Dict, Iterable

from agency_api.models.admin import AdminUser, Capability, Role


def normalize_permissions(raw: Dict | None) -> Dict[Capability, bool]:
    """Every capability present, unknown keys dropped, values coerced to bool."""
    raw = raw or {}
    return {cap: bool(raw.get(cap.value, raw.get(cap, False))) for cap in Capability}


def resolve_permissions(account: AdminUser) -> Dict[Capability, bool]:
    """Effective capabilities of an account; a super admin holds all of them."""
    if account.role == Role.SUPER_ADMIN.value:
        return {cap: True for cap in Capability}
    return normalize_permissions(account.permissions)


def permissions_payload(permissions: Dict[Capability, bool]) -> Dict[str, bool]:
    return {cap.value: bool(permissions.get(cap, False)) for cap in Capability}


@dataclass
class AdminContext:
    """Authenticated admin as seen by a route."""
    account_id: int
    email: str
    role: str
    permissions: Dict[Capability, bool] = field(default_factory=dict)

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN.value

    def has(self, capability: Capability) -> bool:
        return self.is_super_admin or bool(self.permissions.get(capability, False))

    def allows(self, capabilities: Iterable[Capability], any_of: bool = False) -> bool:
        capabilities = list(capabilities)
        if not capabilities:
            return True
        check = any if any_of else all
        return check(self.has(cap) for cap in capabilities)

    @classmethod
    def from_account(cls, account: AdminUser) -> "AdminContext":
        return cls(
            account_id=account.id,
            email=account.email,
            role=account.role,
            permissions=resolve_permissions(account),
        )
