import pytest

from app.core.enums import MemberRole
from app.models import Member


@pytest.fixture
def owner(venue, make_user, make_member):
    organization, _, _ = venue
    user = make_user(email="owner@riverside.example.com", name="Ana Silva")
    make_member(user, organization)
    return user


def _url(organization):
    return f"/api/v1/organizations/{organization.id}/members"


def test_invite_member_with_facilities(client, db, venue, owner, make_user, auth_headers):
    organization, facility, _ = venue
    coach = make_user(email="coach@riverside.example.com", name="Coach Kim")

    response = client.post(
        _url(organization),
        json={"email": coach.email, "role": "member", "facility_ids": [facility.id]},
        headers=auth_headers(owner),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user_id"] == coach.id
    assert body["role"] == "member"
    assert body["facility_ids"] == [facility.id]
    assert body["email"] == "coach@riverside.example.com"
    assert db.query(Member).filter_by(user_id=coach.id).count() == 1


def test_admin_is_not_an_organization_role(client, venue, owner, make_user, auth_headers):
    organization, _, _ = venue
    coach = make_user(email="coach@riverside.example.com", name="Coach Kim")

    response = client.post(
        _url(organization), json={"email": coach.email, "role": "admin"}, headers=auth_headers(owner)
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_MEMBER_ROLE"
    assert body["detail"] == "Role must be 'owner' or 'member'"
    assert body["errors"] == {"role": "admin"}


def test_existing_member_is_a_conflict(client, venue, owner, auth_headers):
    organization, _, _ = venue

    response = client.post(
        _url(organization), json={"email": owner.email, "role": "owner"}, headers=auth_headers(owner)
    )

    assert response.status_code == 409


def test_members_cannot_invite(client, venue, make_user, make_member, auth_headers):
    organization, _, _ = venue

    member = make_user(email="coach@riverside.example.com", name="Coach Kim")
    make_member(member, organization, role=MemberRole.MEMBER)
    guest = make_user(email="guest@example.com", name="Lea Novak")

    response = client.post(
        _url(organization), json={"email": guest.email}, headers=auth_headers(member)
    )

    assert response.status_code == 403
