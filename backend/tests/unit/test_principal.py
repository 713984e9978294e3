from app.core.enums import MemberRole, TrustLevel, weekly_limit_for
from app.principal import Actor, OrgMember, OrgOwner, PlatformAdmin
from app.services.organization_access_service import facility_scope, is_owner_role


def _actor(**fields):
    return Actor(user_id="u1", email="maria@example.com", **fields)


class TestRoleIn:
    def test_platform_admin_outranks_membership(self):
        actor = _actor(is_platform_admin=True, memberships={"org": MemberRole.MEMBER})

        assert actor.role_in("org") == PlatformAdmin("u1")
        assert actor.role_in(None) == PlatformAdmin("u1")

    def test_owner(self):
        assert _actor(memberships={"org": MemberRole.OWNER}).role_in("org") == OrgOwner("u1", "org")

    def test_member_carries_assigned_facilities(self):
        actor = _actor(
            memberships={"org": MemberRole.MEMBER},
            assigned_facilities={"org": frozenset({"f1"})},
        )

        assert actor.role_in("org") == OrgMember("u1", "org", frozenset({"f1"}))

    def test_customer_has_no_role(self):
        actor = _actor(memberships={"org": MemberRole.OWNER})

        assert actor.role_in("other-org") is None
        assert actor.role_in(None) is None


def test_is_owner_role():
    assert is_owner_role(PlatformAdmin("u1")) is True
    assert is_owner_role(OrgOwner("u1", "org")) is True
    assert is_owner_role(OrgMember("u1", "org")) is False
    assert is_owner_role(None) is False


def test_facility_scope():
    assert facility_scope(PlatformAdmin("u1")) is None
    assert facility_scope(OrgOwner("u1", "org")) is None
    assert facility_scope(OrgMember("u1", "org", frozenset({"f1"}))) == frozenset({"f1"})
    assert facility_scope(None) == frozenset()


def test_weekly_limits_per_level():
    assert [weekly_limit_for(level) for level in TrustLevel] == [0, 1, 3, 5]
