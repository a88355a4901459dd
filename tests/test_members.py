from datetime import date

import pytest

from aydf import models
from aydf.routers import members
from aydf.routers.members import one_year_after

from conftest import auth_headers, make_user


def register(client, user_id, **extra):
    return client.post("/members/register", json={"userId": user_id, **extra})


def verify(client, member_id, order_id, payment_id, signature):
    return client.post("/members/verify-payment", json={
        "memberId": member_id,
        "orderId": order_id,
        "paymentId": payment_id,
        "signature": signature
    })


def paid_member(client, sign, user):
    created = register(client, user.id).json()
    order_id = created["order"]["orderId"]
    verify(client, created["member"]["id"], order_id, "pay_mem", sign(order_id, "pay_mem"))
    return created["member"]["id"]


#------------------------REGISTER------------------------

def test_register_creates_pending_membership(client, user, db, razorpay_client):
    response = register(client, user.id, address={"city": "Patna", "pincode": "800001"}, occupation="Teacher",
                        dateOfBirth="1990-04-12")

    assert response.status_code == 201
    body = response.json()
    assert body["order"]["amount"] == 50000
    assert body["order"]["currency"] == "INR"
    assert body["member"]["membershipId"] == f"AYDF{date.today().year}00001"

    member = db.query(models.Member).filter_by(id=body["member"]["id"]).first()
    assert member.is_active is False
    assert member.payment_status == "pending"
    assert member.city == "Patna"
    assert member.membership_expiry_date == one_year_after(date.today())

    data, _ = razorpay_client.order.calls[0]
    assert data["receipt"].startswith("MEM")


def test_membership_ids_are_sequential(client, user, db):
    other = make_user(db, "second@example.com")

    first = register(client, user.id).json()["member"]["membershipId"]
    second = register(client, other.id).json()["member"]["membershipId"]

    assert first.endswith("00001")
    assert second.endswith("00002")


def test_register_unknown_user(client, razorpay_client):
    response = register(client, 999)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "User not found"}
    assert razorpay_client.order.calls == []


def test_register_rejects_bad_pincode(client, user):
    response = register(client, user.id, address={"pincode": "12"})

    assert response.status_code == 400


def test_active_member_cannot_register_again(client, user, sign):
    paid_member(client, sign, user)

    response = register(client, user.id)

    assert response.status_code == 400
    assert response.json()["message"] == "User is already an active member"


def test_unpaid_registration_is_reissued(client, user, db, sign):
    first = register(client, user.id).json()
    second = register(client, user.id, occupation="Farmer").json()

    assert second["member"] == first["member"]
    assert second["order"]["orderId"] != first["order"]["orderId"]
    assert db.query(models.Member).count() == 1

    stale_order = first["order"]["orderId"]
    response = verify(client, first["member"]["id"], stale_order, "pay_old", sign(stale_order, "pay_old"))
    assert response.status_code == 400

    db.expire_all()
    member = db.query(models.Member).first()
    assert member.payment_order_id == second["order"]["orderId"]
    assert member.occupation == "Farmer"
    assert member.payment_status == "pending"


@pytest.mark.parametrize("start, expected", [
    (date(2025, 6, 15), date(2026, 6, 15)),
    (date(2024, 2, 29), date(2025, 3, 1)),
])
def test_one_year_after(start, expected):
    assert one_year_after(start) == expected


#------------------------VERIFY------------------------

def test_verify_activates_membership_and_promotes_user(client, user, db, sign):
    created = register(client, user.id).json()
    order_id = created["order"]["orderId"]

    response = verify(client, created["member"]["id"], order_id, "pay_mem", sign(order_id, "pay_mem"))

    assert response.status_code == 200
    body = response.json()
    assert body["alreadyProcessed"] is False
    assert body["member"]["membershipId"] == created["member"]["membershipId"]
    assert body["member"]["user"]["email"] == user.email

    db.expire_all()
    member = db.query(models.Member).filter_by(id=created["member"]["id"]).first()
    assert member.is_active is True
    assert member.payment_status == "completed"
    assert member.payment_id == "pay_mem"
    assert member.user.role == "member"


def test_duplicate_member_verification_is_idempotent(client, user, sign):
    created = register(client, user.id).json()
    order_id = created["order"]["orderId"]
    signature = sign(order_id, "pay_mem")

    verify(client, created["member"]["id"], order_id, "pay_mem", signature)
    response = verify(client, created["member"]["id"], order_id, "pay_mem", signature)

    assert response.status_code == 200
    assert response.json()["alreadyProcessed"] is True


def test_failed_role_promotion_leaves_payment_pending(client, user, db, sign, mocker):
    created = register(client, user.id).json()
    order_id = created["order"]["orderId"]
    signature = sign(order_id, "pay_mem")
    real_set_role = members.set_role
    calls = []

    def flaky_set_role(target, role):
        calls.append(role)
        if len(calls) == 1:
            raise RuntimeError("connection lost")
        real_set_role(target, role)

    mocker.patch("aydf.routers.members.set_role", side_effect=flaky_set_role)

    with pytest.raises(RuntimeError):
        verify(client, created["member"]["id"], order_id, "pay_mem", signature)

    db.expire_all()
    member = db.query(models.Member).filter_by(id=created["member"]["id"]).first()
    assert member.payment_status == "pending"
    assert member.is_active is False
    assert member.user.role == "user"

    response = verify(client, created["member"]["id"], order_id, "pay_mem", signature)

    assert response.status_code == 200
    assert response.json()["alreadyProcessed"] is False
    db.expire_all()
    member = db.query(models.Member).filter_by(id=created["member"]["id"]).first()
    assert member.is_active is True
    assert member.user.role == "member"


def test_member_verification_with_bad_signature(client, user, db):
    created = register(client, user.id).json()

    response = verify(client, created["member"]["id"], created["order"]["orderId"], "pay_mem", "forged")

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid payment signature"
    db.expire_all()
    assert db.query(models.User).filter_by(id=user.id).first().role == "user"


def test_admin_keeps_admin_role_after_paying(client, admin, db, sign):
    paid_member(client, sign, admin)

    db.expire_all()
    assert db.query(models.User).filter_by(id=admin.id).first().role == "admin"


#------------------------PROFILE & ADMIN------------------------

def test_profile_for_paid_member(client, user, sign):
    member_id = paid_member(client, sign, user)

    response = client.get("/members/profile", headers=auth_headers(user))

    assert response.status_code == 200
    member = response.json()["member"]
    assert member["id"] == member_id
    assert member["isActive"] is True
    assert member["paymentDetails"]["status"] == "completed"


def test_profile_requires_member_role(client, user):
    response = client.get("/members/profile", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_admin_lists_members_by_status(client, user, db, sign, admin_headers):
    paid_member(client, sign, user)
    register(client, make_user(db, "pending@example.com").id)

    everything = client.get("/members/", headers=admin_headers).json()
    active = client.get("/members/", params={"status": "active"}, headers=admin_headers).json()
    inactive = client.get("/members/", params={"status": "inactive"}, headers=admin_headers).json()

    assert everything["total"] == 2
    assert active["total"] == 1
    assert active["members"][0]["user"]["email"] == user.email
    assert inactive["total"] == 1


def test_admin_routes_reject_non_admins(client, user, sign):
    member_id = paid_member(client, sign, user)

    assert client.get("/members/", headers=auth_headers(user)).status_code == 403
    assert client.get(f"/members/{member_id}", headers=auth_headers(user)).status_code == 403


def test_admin_gets_member(client, user, sign, admin_headers):
    member_id = paid_member(client, sign, user)

    response = client.get(f"/members/{member_id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["member"]["membershipId"].startswith("AYDF")
    assert client.get("/members/999", headers=admin_headers).status_code == 404


def test_deactivating_member_demotes_user(client, user, db, sign, admin, admin_headers):
    member_id = paid_member(client, sign, user)

    response = client.put(f"/members/{member_id}/status", json={"isActive": False, "notes": "Lapsed"},
                          headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Member deactivated successfully"
    assert response.json()["member"]["notes"] == "Lapsed"
    db.expire_all()
    member = db.query(models.Member).filter_by(id=member_id).first()
    assert member.is_active is False
    assert member.updated_by == admin.id
    assert member.user.role == "user"


def test_deleting_member_demotes_user(client, user, db, sign, admin_headers):
    member_id = paid_member(client, sign, user)

    response = client.delete(f"/members/admin/{member_id}", headers=admin_headers)

    assert response.status_code == 200
    db.expire_all()
    assert db.query(models.Member).count() == 0
    assert db.query(models.User).filter_by(id=user.id).first().role == "user"


def test_status_update_without_notes_keeps_them(client, user, db, sign, admin_headers):
    member_id = paid_member(client, sign, user)
    client.put(f"/members/{member_id}/status", json={"isActive": True, "notes": "Paid in cash"}, headers=admin_headers)

    response = client.put(f"/members/{member_id}/status", json={"isActive": False}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["member"]["notes"] == "Paid in cash"
    db.expire_all()
    assert db.query(models.Member).filter_by(id=member_id).first().notes == "Paid in cash"
