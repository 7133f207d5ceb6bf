"""Role grant variants.

A role either grants an explicit, finite set of permission codes or is
unrestricted. On the wire the unrestricted grant is spelled as a permission
list containing ``FULL_SYSTEM_ACCESS``; inside the library it is the
``UNRESTRICTED`` singleton so evaluation never compares the sentinel string.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Union

from posauthz.constants.permissions import ALL_PERMISSION_CODES, FULL_SYSTEM_ACCESS, PermissionCode


def _plain(code) -> str:
    return code.value if isinstance(code, PermissionCode) else str(code)


@dataclass(frozen=True)
class Explicit:
    codes: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        # the sentinel is only ever spelled as Unrestricted
        if FULL_SYSTEM_ACCESS in self.codes:
            raise ValueError(f'{FULL_SYSTEM_ACCESS} cannot be part of an explicit grant; use UNRESTRICTED')

    def grants(self, code) -> bool:
        return _plain(code) in self.codes

    def to_codes(self) -> List[str]:
        return sorted(self.codes)


@dataclass(frozen=True)
class Unrestricted:
    def grants(self, code) -> bool:
        return True

    def to_codes(self) -> List[str]:
        return [FULL_SYSTEM_ACCESS]


UNRESTRICTED = Unrestricted()

RoleGrant = Union[Explicit, Unrestricted]


def explicit(codes: Iterable) -> RoleGrant:
    """Grant for ``codes``; a list holding the sentinel yields UNRESTRICTED."""
    return grant_from_codes(codes)


def grant_from_codes(codes: Iterable) -> RoleGrant:
    """Parse a wire permission list into a grant."""
    plain = [_plain(c) for c in codes]
    if FULL_SYSTEM_ACCESS in plain:
        return UNRESTRICTED
    return Explicit(frozenset(plain))


@dataclass(frozen=True)
class GrantedRole:
    """Immutable snapshot of a role as the evaluator sees it."""
    name: str
    grant: RoleGrant


def is_unrestricted(grant: RoleGrant) -> bool:
    return isinstance(grant, Unrestricted)


def union(grants: Iterable[RoleGrant]) -> RoleGrant:
    codes = set()
    for g in grants:
        if isinstance(g, Unrestricted):
            return UNRESTRICTED
        codes |= g.codes
    return Explicit(frozenset(codes))


def expand(grant: RoleGrant) -> List[str]:
    """Concrete codes a grant covers; unrestricted expands to the whole registry."""
    if isinstance(grant, Unrestricted):
        return list(ALL_PERMISSION_CODES)
    return sorted(grant.codes)


__all__ = [
    'Explicit', 'Unrestricted', 'UNRESTRICTED', 'RoleGrant', 'GrantedRole', 'explicit', 'grant_from_codes',
    'is_unrestricted', 'union', 'expand',
]
