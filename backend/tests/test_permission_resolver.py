import threading
import pytest
from sqlalchemy import select

from asset_transfer import get_db
from asset_transfer.constants.permissions import ALL_PERMISSION_NAMES, ROLE_PRESETS
from asset_transfer.errors import NotFoundError, ValidationError
from asset_transfer.models.authz import Permission
from asset_transfer.services.permissions import resolver, resolve_permissions, PermissionResolver
from tests.test_utils_seed import ensure_role, ensure_all_roles


def test_admin_resolves_to_full_catalog():
    ensure_role('Admin')
    assert resolve_permissions({'Admin'}) == set(ALL_PERMISSION_NAMES)


def test_empty_role_set_resolves_to_empty():
    ensure_all_roles()
    assert resolve_permissions(set()) == set()


def test_unknown_role_contributes_nothing():
    ensure_role('Manager')
    assert resolve_permissions({'Manager', 'Ghost'}) == set(ROLE_PRESETS['Manager'])
    assert resolver.permissions_for_role('Ghost') == frozenset()


def test_union_is_deduplicated():
    ensure_role('Manager')
    ensure_role('Accountant')
    perms = resolve_permissions(['Manager', 'Accountant', 'Manager'])
    assert perms == {'ViewAssets', 'ApproveManager', 'UpdateFinancials'}


def test_add_is_idempotent():
    ensure_role('Auditor', [])
    once = resolver.add_permissions_to_role('Auditor', ['ViewAssets'])
    twice = resolver.add_permissions_to_role('Auditor', ['ViewAssets'])
    assert once == twice == frozenset({'ViewAssets'})


def test_add_upserts_unknown_permission_names():
    ensure_role('Auditor', [])
    resolver.add_permissions_to_role('Auditor', ['ExportLedger'])
    session = get_db()
    assert session.execute(select(Permission).where(Permission.name == 'ExportLedger')).scalar_one()
    assert 'ExportLedger' in resolve_permissions({'Auditor'})


def test_remove_is_idempotent_and_invalidates_cache():
    ensure_role('Manager')
    assert 'ApproveManager' in resolver.permissions_for_role('Manager')
    resolver.remove_permissions_from_role('Manager', ['ApproveManager'])
    assert resolver.remove_permissions_from_role('Manager', ['ApproveManager', 'NeverThere']) == frozenset({'ViewAssets'})
    assert resolve_permissions({'Manager'}) == {'ViewAssets'}


def test_edits_on_unknown_role_are_not_found():
    with pytest.raises(NotFoundError):
        resolver.add_permissions_to_role('Ghost', ['ViewAssets'])
    with pytest.raises(NotFoundError):
        resolver.remove_permissions_from_role('Ghost', ['ViewAssets'])


def test_bare_string_is_rejected():
    ensure_role('Auditor', [])
    with pytest.raises(ValidationError):
        resolver.add_permissions_to_role('Auditor', 'ViewAssets')


def test_stale_reader_does_not_repopulate_cache():
    r = PermissionResolver()
    _, generation = r._cached('Manager')
    r.invalidate('Manager')
    r._store('Manager', frozenset({'Old'}), generation)
    assert r._cached('Manager')[0] is None


def test_concurrent_readers_share_one_answer():
    ensure_role('Manager')
    expected = resolver.permissions_for_role('Manager')
    results = []

    def read():
        # cache hits only; no session needed once warmed
        results.append(resolver.permissions_for_role('Manager'))

    threads = [threading.Thread(target=read) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results == [expected] * 8
