import pytest
from posauthz.constants.permissions import ALL_PERMISSION_CODES, PermissionCode as P
from posauthz.services.grants import (
    GrantedRole, UNRESTRICTED, Explicit, explicit, grant_from_codes, union, expand, is_unrestricted,
)
from posauthz.services.policy import effective_grant, effective_permissions, is_allowed, is_allowed_any

ADMIN = GrantedRole('ADMIN', UNRESTRICTED)
MANAGER = GrantedRole('MANAGER', explicit([P.VIEW_SALES, P.CREATE_SALE]))
CASHIER = GrantedRole('CASHIER', explicit(['CREATE_SALE']))
TECHNICIAN = GrantedRole('TECHNICIAN', explicit(['UPDATE_REPAIR']))


@pytest.mark.parametrize('code', ['VIEW_SALES', 'DELETE_USER', 'ANY_RANDOM_CODE', ''])
def test_unrestricted_allows_every_code(code):
    assert is_allowed([ADMIN], code)


def test_explicit_role_allows_only_its_codes():
    assert is_allowed([MANAGER], 'VIEW_SALES')
    assert is_allowed([MANAGER], P.CREATE_SALE)
    assert not is_allowed([MANAGER], 'DELETE_USER')


def test_or_law_over_roles():
    roles = [CASHIER, TECHNICIAN]
    assert is_allowed(roles, 'UPDATE_REPAIR')
    assert is_allowed(roles, 'CREATE_SALE')
    assert not is_allowed(roles, 'DELETE_USER')
    for code in ('CREATE_SALE', 'UPDATE_REPAIR', 'DELETE_USER', 'VIEW_SALES'):
        assert is_allowed(roles, code) == any(is_allowed([r], code) for r in roles)


def test_no_roles_never_allowed():
    assert not is_allowed([], 'VIEW_SALES')
    assert not is_allowed([], 'FULL_SYSTEM_ACCESS')
    assert not is_allowed_any([], ['VIEW_SALES', 'CREATE_SALE'])


def test_evaluation_is_idempotent():
    results = {is_allowed([MANAGER, CASHIER], 'VIEW_SALES') for _ in range(5)}
    assert results == {True}
    assert MANAGER.grant == explicit(['CREATE_SALE', 'VIEW_SALES'])


def test_unknown_code_silently_denied_for_explicit_roles():
    assert not is_allowed([MANAGER, CASHIER], 'NOT_A_REAL_CODE')


def test_sentinel_parses_to_unrestricted_grant():
    assert grant_from_codes(['VIEW_SALES', 'FULL_SYSTEM_ACCESS']) is UNRESTRICTED
    assert grant_from_codes(['VIEW_SALES']) == Explicit(frozenset({'VIEW_SALES'}))
    assert UNRESTRICTED.to_codes() == ['FULL_SYSTEM_ACCESS']


def test_is_allowed_any_matches_any_of():
    assert is_allowed_any([CASHIER], ['DELETE_USER', 'CREATE_SALE'])
    assert not is_allowed_any([CASHIER], ['DELETE_USER', 'VIEW_USERS'])


def test_effective_permissions_union_and_expansion():
    assert effective_permissions([CASHIER, TECHNICIAN]) == ['CREATE_SALE', 'UPDATE_REPAIR']
    assert effective_permissions([CASHIER, ADMIN]) == list(ALL_PERMISSION_CODES)
    assert is_unrestricted(effective_grant([TECHNICIAN, ADMIN]))
    assert union([]) == Explicit(frozenset())
    assert expand(explicit([])) == []


def test_grant_instances_accepted_directly():
    assert is_allowed([explicit(['VIEW_SALES'])], 'VIEW_SALES')
    assert is_allowed([UNRESTRICTED], 'ANYTHING')


def test_explicit_with_sentinel_is_unrestricted():
    stray = GrantedRole('ADMIN', explicit(['FULL_SYSTEM_ACCESS']))
    assert stray.grant is UNRESTRICTED
    assert is_allowed([stray], 'ANY_RANDOM_CODE')
    assert explicit([P.VIEW_SALES, P.FULL_SYSTEM_ACCESS]) is UNRESTRICTED


def test_explicit_variant_rejects_sentinel():
    with pytest.raises(ValueError):
        Explicit(frozenset({'VIEW_SALES', 'FULL_SYSTEM_ACCESS'}))
