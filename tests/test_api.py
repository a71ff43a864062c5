from datetime import timedelta
from uuid import UUID

from conftest import STARTER_PRICE, auth_headers
from portfolio_manager.components.invitations.crud import InvitationsCRUD
from portfolio_manager.core.security import create_access_token
from portfolio_manager.core.utils import utcnow


def _invite(client, owner, email):
    response = client.post(
        "/api/v1/portfolio/invitations", json={"email": email}, headers=auth_headers(owner)
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requests_without_token_are_rejected(client):
    response = client.get("/api/v1/portfolio")
    assert response.status_code in (401, 403)


def test_expired_token_is_rejected(client, owner):
    token = create_access_token(
        {"user_id": str(owner.pid), "email": owner.email}, expires_delta=timedelta(minutes=-1)
    )

    response = client.get("/api/v1/portfolio", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


def test_token_without_user_id_is_rejected(client):
    token = create_access_token({"email": "someone@example.com"})

    response = client.get("/api/v1/portfolio", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_create_and_get_portfolio(client, owner):
    created = client.post("/api/v1/portfolio", headers=auth_headers(owner))
    assert created.status_code == 200, created.text
    body = created.json()
    assert body["owner_id"] == str(owner.pid)
    assert body["is_owner"] is True

    again = client.post("/api/v1/portfolio", headers=auth_headers(owner))
    assert again.json()["id"] == body["id"]

    fetched = client.get("/api/v1/portfolio", headers=auth_headers(owner))
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]


def test_create_portfolio_requires_growth(client, make_profile, make_subscription):
    user = make_profile("starter@example.com")
    make_subscription(user.pid, STARTER_PRICE)

    response = client.post("/api/v1/portfolio", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["detail"]["error_code"] == "TIER_INELIGIBLE"


def test_get_portfolio_without_membership(client, make_profile):
    user = make_profile("solo@example.com")

    response = client.get("/api/v1/portfolio", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json()["detail"] == "You are not a member of any portfolio"


def test_check_tier(client, owner):
    response = client.get(
        "/api/v1/portfolio/check-tier",
        params={"price_id": "price_growth_yearly"},
        headers=auth_headers(owner),
    )

    assert response.json() == {
        "price_id": "price_growth_yearly",
        "tier": "GROWTH",
        "display_name": "Growth",
    }


def test_check_tier_requires_price_id(client, owner):
    response = client.get("/api/v1/portfolio/check-tier", headers=auth_headers(owner))

    assert response.status_code == 422
    assert response.json()["detail"]["error_code"] == "REQUEST_VALIDATION_ERROR"


def test_invitation_round_trip(client, db, portfolio, owner, make_profile, email_outbox):
    member = make_profile("member@example.com", "Max", "Member")

    invitation = _invite(client, owner, "Member@Example.com")
    assert invitation["email"] == "member@example.com"
    assert invitation["status"] == "pending"
    token = email_outbox.sent[0]["params"]["invite_link"].rsplit("/", 1)[-1]

    details = client.get(f"/api/v1/portfolio/invitations/{token}")
    assert details.status_code == 200
    assert details.json()["invited_by_name"] == "Olivia Owner"
    assert details.json()["portfolio_id"] == str(portfolio.pid)

    accepted = client.post(
        f"/api/v1/portfolio/invitations/{token}/accept", headers=auth_headers(member)
    )
    assert accepted.status_code == 200, accepted.text
    assert accepted.json() == {"success": True, "portfolio_id": str(portfolio.pid)}

    collaborators = client.get(
        "/api/v1/portfolio/collaborators", headers=auth_headers(member)
    ).json()["collaborators"]
    assert {c["email"] for c in collaborators} == {"owner@example.com", "member@example.com"}

    reused = client.post(
        f"/api/v1/portfolio/invitations/{token}/accept", headers=auth_headers(member)
    )
    assert reused.status_code == 404
    assert reused.json()["detail"]["error_code"] == "INVALID_OR_EXPIRED"


def test_duplicate_invitation(client, portfolio, owner):
    _invite(client, owner, "member@example.com")

    response = client.post(
        "/api/v1/portfolio/invitations",
        json={"email": "member@example.com"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == {
        "error_code": "ALREADY_EXISTS",
        "message": "An invitation already exists for this email",
    }


def test_invalid_invitation_email(client, portfolio, owner):
    response = client.post(
        "/api/v1/portfolio/invitations", json={"email": "not-an-email"}, headers=auth_headers(owner)
    )

    assert response.status_code == 422


def test_expired_invitation_lookup(client, db, portfolio, owner):
    invitation = _invite(client, owner, "member@example.com")
    row = InvitationsCRUD(db).get_by_pid(UUID(invitation["id"]))
    row.expires_at = utcnow() - timedelta(hours=1)
    db.commit()

    response = client.get(f"/api/v1/portfolio/invitations/{row.token}")

    assert response.status_code == 404
    assert response.json()["detail"]["error_code"] == "INVALID_OR_EXPIRED"


def test_accept_with_wrong_account(client, portfolio, owner, make_profile, email_outbox):
    other = make_profile("other@example.com")
    _invite(client, owner, "member@example.com")
    token = email_outbox.sent[0]["params"]["invite_link"].rsplit("/", 1)[-1]

    response = client.post(
        f"/api/v1/portfolio/invitations/{token}/accept", headers=auth_headers(other)
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "EMAIL_MISMATCH"


def test_list_and_cancel_invitations(client, portfolio, owner):
    first = _invite(client, owner, "first@example.com")
    _invite(client, owner, "second@example.com")

    listed = client.get("/api/v1/portfolio/invitations", headers=auth_headers(owner))
    assert {i["email"] for i in listed.json()["invitations"]} == {
        "first@example.com",
        "second@example.com",
    }

    cancelled = client.delete(
        f"/api/v1/portfolio/invitations/{first['id']}", headers=auth_headers(owner)
    )
    assert cancelled.status_code == 200

    listed = client.get("/api/v1/portfolio/invitations", headers=auth_headers(owner))
    assert [i["email"] for i in listed.json()["invitations"]] == ["second@example.com"]

    again = client.delete(
        f"/api/v1/portfolio/invitations/{first['id']}", headers=auth_headers(owner)
    )
    assert again.status_code == 404


def test_collaborator_cannot_manage_invitations(client, portfolio, add_collaborator):
    member = add_collaborator("member@example.com")

    response = client.post(
        "/api/v1/portfolio/invitations",
        json={"email": "friend@example.com"},
        headers=auth_headers(member),
    )

    assert response.status_code == 403
    assert response.json()["detail"]["error_code"] == "UNAUTHORIZED"


def test_remove_collaborator(client, portfolio, owner, add_collaborator):
    member = add_collaborator("member@example.com")

    forbidden = client.delete(
        f"/api/v1/portfolio/collaborators/{owner.pid}", headers=auth_headers(member)
    )
    assert forbidden.status_code == 403

    removed = client.delete(
        f"/api/v1/portfolio/collaborators/{member.pid}", headers=auth_headers(owner)
    )
    assert removed.json() == {"success": True}

    assert client.get("/api/v1/portfolio", headers=auth_headers(member)).status_code == 404


def test_seats(client, portfolio, owner, add_collaborator):
    add_collaborator("member@example.com")

    response = client.get("/api/v1/portfolio/seats", headers=auth_headers(owner))

    assert response.json()["seats_used"] == 2
    assert response.json()["seats_remaining"] == 1


def test_sync_tiers(client, portfolio, owner, add_collaborator):
    member = add_collaborator("member@example.com")

    downgraded = client.post(
        "/api/v1/portfolio/sync-tiers", json={"tier": "FREE"}, headers=auth_headers(owner)
    )
    assert downgraded.json() == {"tier": "FREE", "subscriptions_synced": 1}

    upgraded = client.post(
        "/api/v1/portfolio/sync-tiers", json={"tier": "GROWTH"}, headers=auth_headers(owner)
    )
    assert upgraded.json() == {"tier": "GROWTH", "subscriptions_synced": 1}

    invalid = client.post(
        "/api/v1/portfolio/sync-tiers", json={"tier": "STARTER"}, headers=auth_headers(owner)
    )
    assert invalid.status_code == 422

    forbidden = client.post(
        "/api/v1/portfolio/sync-tiers", json={"tier": "FREE"}, headers=auth_headers(member)
    )
    assert forbidden.status_code == 403


def test_posts_visibility(client, portfolio, owner, add_collaborator, make_post, make_grant):
    member = add_collaborator("member@example.com")
    make_grant(member.pid, "org-1")
    shared = make_post(owner.pid, publish_target="org-1", portfolio_id=portfolio.pid)
    private = make_post(owner.pid, publish_target="personal", portfolio_id=portfolio.pid)

    posts = client.get("/api/v1/posts", headers=auth_headers(member)).json()["posts"]
    assert [post["id"] for post in posts] == [shared.id]
    assert posts[0]["organization_ids"] == ["org-1"]
    assert posts[0]["is_own"] is False

    access = client.get(f"/api/v1/posts/{private.id}/access", headers=auth_headers(member))
    assert access.json() == {"post_id": private.id, "can_access": False}

    access = client.get(f"/api/v1/posts/{shared.id}/access", headers=auth_headers(member))
    assert access.json() == {"post_id": shared.id, "can_access": True}

    organizations = client.get("/api/v1/posts/organizations", headers=auth_headers(member))
    assert organizations.json() == {"organization_ids": ["org-1"]}


def test_posts_without_portfolio(client, make_profile, make_post):
    user = make_profile("solo@example.com")
    own = make_post(user.pid, publish_target="org-1")

    posts = client.get("/api/v1/posts", headers=auth_headers(user)).json()["posts"]

    assert [post["id"] for post in posts] == [own.id]
    assert posts[0]["is_own"] is True


def test_posts_include_own_untagged_posts(client, portfolio, owner, add_collaborator, make_post):
    member = add_collaborator("member@example.com")
    untagged = make_post(member.pid, publish_target="personal")
    make_post(owner.pid, publish_target="personal", portfolio_id=portfolio.pid)

    posts = client.get("/api/v1/posts", headers=auth_headers(member)).json()["posts"]

    assert [post["id"] for post in posts] == [untagged.id]
    assert posts[0]["portfolio_id"] is None
    assert posts[0]["is_own"] is True
