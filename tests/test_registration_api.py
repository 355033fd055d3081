import asyncio
from datetime import datetime, timedelta

from bson import ObjectId


def create_promo(client, admin_headers, **overrides):
    body = {"code": "save20", "discountType": "percent", "amount": 20, **overrides}
    response = client.post("/api/admin/promocodes", json=body, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


def register(client, **overrides):
    body = {
        "name": "Asha Rao",
        "email": "Asha@Example.com",
        "course": "data-science",
        "amount": 500,
        "paymentProof": {"method": "upi", "txnId": "TXN1", "screenshot": "https://img.example.com/1.png"},
        **overrides,
    }
    return client.post("/api/register", json=body)


def test_registration_to_verified_student(client, ctx, admin_headers, mailer):
    promo = create_promo(client, admin_headers)
    assert promo["code"] == "SAVE20"

    quote = client.post("/api/promocodes/apply", json={"code": "SAVE20", "amount": 500})
    assert quote.status_code == 200
    assert quote.json() == {
        "ok": True, "code": "SAVE20", "discountType": "percent", "discountAmount": 100.0, "finalAmount": 400.0,
    }

    response = register(client, promoCode="save20")
    assert response.status_code == 201, response.text
    created = response.json()
    assert created["status"] == "awaiting_verification"
    assert created["amount"] == 400.0

    polled = client.get(f"/api/register/{created['id']}").json()["registration"]
    assert polled["status"] == "awaiting_verification"
    assert polled["promoCode"] == "SAVE20"
    assert polled["discountAmount"] == 100.0
    assert "email" not in polled

    response = client.put(
        f"/api/admin/registrations/{created['id']}/verify",
        json={"action": "verify", "verificationNotes": "ok"},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["registration"]["status"] == "verified"
    assert body["registration"]["paid"] is True
    assert body["email"]["ok"] is True
    assert body["createUser"]["result"]["created"] is True
    assert body["warnings"] == []

    promo_doc = client.get(f"/api/admin/promocodes/{promo['_id']}", headers=admin_headers).json()
    assert promo_doc["usesCount"] == 1

    assert [m["to"] for m in mailer.sent] == ["asha@example.com", "asha@example.com"]


def test_remote_user_created_with_student_role(client, ctx, admin_headers):
    created = register(client).json()
    client.put(f"/api/admin/registrations/{created['id']}/verify", json={"action": "verify"}, headers=admin_headers)

    remote_db = asyncio.run(ctx.get_remote_db())
    user = asyncio.run(remote_db.users.find_one({"email": "asha@example.com"}))
    assert user["roles"] == ["student"]


def test_course_price_overrides_client_amount(client, admin_headers):
    course = client.post(
        "/api/admin/courses", json={"title": "Data Science", "price": 999}, headers=admin_headers,
    ).json()["course"]

    response = register(client, course=course["slug"], amount=1)

    assert response.json()["amount"] == 999.0


def test_registration_without_proof_is_pending(client):
    response = register(client, paymentProof=None)

    assert response.status_code == 201
    assert response.json()["status"] == "pending"


def test_free_registration_is_paid(client):
    response = register(client, amount=0, paymentProof=None)

    reg = client.get(f"/api/register/{response.json()['id']}").json()["registration"]
    assert reg["paid"] is True


def test_registration_validation(client):
    response = register(client, email="not-an-email")

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert "email" in response.json()["issues"]


def test_registration_rejects_non_finite_amount(client):
    for raw in ("Infinity", "-Infinity", "NaN", "1e400"):
        response = client.post(
            "/api/register",
            content='{"name": "A", "email": "a@example.com", "course": "unknown", "amount": %s}' % raw,
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 422, raw
        assert response.json()["error"] == "validation_error"
        assert "amount" in response.json()["issues"]


def test_registration_with_unpriceable_course(client, ctx):
    asyncio.run(ctx.db.courses.insert_one({"title": "Broken", "slug": "broken", "price": "abc"}))

    response = register(client, course="broken")

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["details"] == {"field": "amount"}


def test_registration_with_unknown_promo(client, ctx):
    response = register(client, promoCode="NOPE")

    assert response.status_code == 404
    assert response.json()["error"] == "invalid_code"


def test_poll_errors(client):
    assert client.get("/api/register/xyz").json()["error"] == "invalid_id"
    response = client.get(f"/api/register/{ObjectId()}")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_verify_requires_admin(client, user_headers, config):
    created = register(client).json()
    url = f"/api/admin/registrations/{created['id']}/verify"

    response = client.put(url, json={"action": "verify"})
    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"

    response = client.put(url, json={"action": "verify"}, headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"

    response = client.put(url, json={"action": "verify"}, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"

    polled = client.get(f"/api/register/{created['id']}").json()["registration"]
    assert polled["status"] == "awaiting_verification"


def test_verify_bad_input(client, admin_headers):
    created = register(client).json()

    response = client.put(
        f"/api/admin/registrations/{created['id']}/verify", json={"action": "approve"}, headers=admin_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_action"

    response = client.put("/api/admin/registrations/bad/verify", json={"action": "verify"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_id"

    response = client.put(
        f"/api/admin/registrations/{ObjectId()}/verify", json={"action": "verify"}, headers=admin_headers,
    )
    assert response.status_code == 404


def test_admin_list_pagination_and_search(client, admin_headers):
    for i in range(7):
        register(client, name=f"Student {i}", email=f"s{i}@example.com", paymentProof={"txnId": f"T{i}"})
    register(client, name="Zed Unique", email="zed@example.com")

    page = client.get("/api/admin/registrations?page=2&limit=5", headers=admin_headers).json()
    assert page["total"] == 8
    assert page["limit"] == 5
    assert page["totalPages"] == 2
    assert len(page["registrations"]) == 3
    assert page["hasPrevPage"] is True
    assert page["hasNextPage"] is False

    clamped = client.get("/api/admin/registrations?limit=1000", headers=admin_headers).json()
    assert clamped["limit"] == 100

    found = client.get("/api/admin/registrations?q=zed%20unique", headers=admin_headers).json()
    assert [r["name"] for r in found["registrations"]] == ["Zed Unique"]

    by_txn = client.get("/api/admin/registrations?q=T3", headers=admin_headers).json()
    assert by_txn["total"] == 1

    pending = client.get("/api/admin/registrations?status=pending", headers=admin_headers).json()
    assert pending["total"] == 7
    assert all(r["warnings"] == [] for r in pending["registrations"])


def test_admin_list_shows_warnings(client, admin_headers, mailer):
    mailer.fail_with = "no_sendgrid_api_key"
    created = register(client).json()
    client.put(f"/api/admin/registrations/{created['id']}/verify", json={"action": "reject"}, headers=admin_headers)

    detail = client.get(f"/api/admin/registrations/{created['id']}", headers=admin_headers).json()

    assert detail["registration"]["warnings"] == ["email_failed"]


def test_admin_manual_create(client, admin_headers):
    response = client.post(
        "/api/admin/registrations",
        json={"name": "Walk In", "email": "walk@example.com", "course": "Python", "paid": True, "amount": 0},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["registration"]["createdBy"] == "admin@rhinogeeks.com"

    response = client.post("/api/admin/registrations", json={"name": "No Email"}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_stats(client, ctx, admin_headers):
    now = datetime.utcnow()
    asyncio.run(ctx.db.registrations.insert_many([
        {"name": "a", "status": "pending", "createdAt": now},
        {"name": "b", "status": "verified", "createdAt": now},
        {"name": "c", "status": "verified", "createdAt": now - timedelta(days=2)},
        {"name": "old", "status": "rejected", "createdAt": now - timedelta(days=40)},
    ]))

    stats = client.get("/api/admin/registrations/stats?days=7", headers=admin_headers).json()

    assert stats["days"] == 7
    assert len(stats["series"]) == 7
    assert stats["series"][-1]["count"] == 2
    assert stats["total"] == 3
    assert stats["statusCounts"] == {"pending": 1, "awaiting_verification": 0, "verified": 2, "rejected": 1}

    clamped = client.get("/api/admin/registrations/stats?days=500", headers=admin_headers).json()
    assert clamped["days"] == 90


def test_sendgrid_webhook_records_last_event(client, admin_headers):
    created = register(client).json()
    client.put(f"/api/admin/registrations/{created['id']}/verify", json={"action": "reject"}, headers=admin_headers)

    response = client.post(
        "/api/webhooks/sendgrid",
        json=[{"sg_message_id": "msg-1.filter0001", "event": "delivered", "timestamp": 1700000000}],
    )
    assert response.json()["matched"] == 1

    detail = client.get(f"/api/admin/registrations/{created['id']}", headers=admin_headers).json()
    assert detail["registration"]["paymentProof"]["email"]["lastEvent"]["event"] == "delivered"


def test_sendgrid_webhook_tolerates_bad_timestamps(client, admin_headers):
    created = register(client).json()
    client.put(f"/api/admin/registrations/{created['id']}/verify", json={"action": "reject"}, headers=admin_headers)

    response = client.post(
        "/api/webhooks/sendgrid",
        json=[
            {"sg_message_id": "msg-1.filter0001", "event": "open", "timestamp": 10 ** 20},
            {"sg_message_id": "msg-1.filter0001", "event": "click", "timestamp": True},
        ],
    )
    assert response.status_code == 200, response.text
    assert response.json()["matched"] == 2

    detail = client.get(f"/api/admin/registrations/{created['id']}", headers=admin_headers).json()
    last_event = detail["registration"]["paymentProof"]["email"]["lastEvent"]
    assert last_event["event"] == "click"
    assert last_event["at"] is not None


def test_verify_action_is_case_insensitive(client, admin_headers):
    created = register(client).json()

    response = client.put(
        f"/api/admin/registrations/{created['id']}/verify", json={"action": " VERIFY "}, headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    assert response.json()["registration"]["status"] == "verified"
