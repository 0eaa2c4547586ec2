"""
Authenticated principal

Customers and employees live in separate tables. Everything past
authentication sees them only through this value.
"""
from dataclasses import dataclass
from typing import Optional

from servicedesk.models.enums import PrincipalKind


@dataclass(frozen=True)
class Principal:
    id: str
    kind: PrincipalKind
    email: str
    role_id: Optional[str] = None

    @property
    def is_customer(self) -> bool:
        return self.kind == PrincipalKind.CUSTOMER

    @property
    def is_employee(self) -> bool:
        return self.kind == PrincipalKind.EMPLOYEE
