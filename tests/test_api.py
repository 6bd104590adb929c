import uuid

from splitledger.main import app
from splitledger.services.rate_limit import RateLimiter


def _request_payload(seed, **overrides):
    payload = {
        "from_account_id": str(seed.alice_account_id),
        "to_account_id": str(seed.bob_account_id),
        "category_id": str(seed.groceries_id),
        "amount": "50.00",
        "currency": "USD",
        "date": "2024-03-15",
        "description": "Groceries run",
    }
    payload.update(overrides)
    return payload


def _expense_payload(seed, **overrides):
    payload = {
        "amount": "90.00",
        "currency": "USD",
        "category_id": str(seed.groceries_id),
        "date": "2024-03-15",
        "description": "Dinner",
        "participants": [
            {"payer_id": str(seed.alice_id), "share_amount": "30.00"},
            {"payer_id": str(seed.bob_id), "share_amount": "30.00"},
            {"payer_id": str(seed.carol_id), "share_amount": "30.00"},
        ],
    }
    payload.update(overrides)
    return payload


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_requires_bearer_token(client, seed):
    response = client.get("/api/v1/transaction-requests")
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "UNAUTHORIZED"


def test_rejects_token_for_unknown_user(client, seed, auth_headers):
    response = client.get("/api/v1/users/me", headers=auth_headers(uuid.uuid4()))
    assert response.status_code == 401


def test_me_lists_own_accounts(client, seed, auth_headers):
    response = client.get("/api/v1/users/me", headers=auth_headers(seed.alice_id))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "alice@example.com"
    assert [a["id"] for a in data["accounts"]] == [str(seed.alice_account_id)]


def test_transaction_request_approve_flow(client, seed, auth_headers):
    created = client.post(
        "/api/v1/transaction-requests", json=_request_payload(seed), headers=auth_headers(seed.alice_id)
    )
    assert created.status_code == 201
    body = created.json()
    assert body["success"] is True
    assert body["error"] is None
    request = body["data"]
    assert request["status"] == "PENDING"
    assert request["amount"] == "50.00"

    incoming = client.get(
        "/api/v1/transaction-requests", params={"direction": "incoming"}, headers=auth_headers(seed.bob_id)
    ).json()["data"]
    assert [r["id"] for r in incoming] == [request["id"]]

    approved = client.post(
        f"/api/v1/transaction-requests/{request['id']}/approve", headers=auth_headers(seed.bob_id)
    )
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "APPROVED"
    assert approved.json()["data"]["updated_at"] is not None

    again = client.post(
        f"/api/v1/transaction-requests/{request['id']}/approve", headers=auth_headers(seed.bob_id)
    )
    assert again.status_code == 400
    error = again.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"] == {"status": ["Request is already approved"]}


def test_cannot_send_from_someone_elses_account(client, seed, auth_headers):
    response = client.post(
        "/api/v1/transaction-requests", json=_request_payload(seed), headers=auth_headers(seed.bob_id)
    )
    assert response.status_code == 403
    assert response.json()["error"] == {"code": "FORBIDDEN", "message": "Access denied", "details": {}}


def test_unknown_request_is_404(client, seed, auth_headers):
    missing = uuid.uuid4()
    response = client.post(f"/api/v1/transaction-requests/{missing}/reject", headers=auth_headers(seed.bob_id))
    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["details"] == {"resource": "TransactionRequest", "id": str(missing)}


def test_malformed_body_is_400(client, seed, auth_headers):
    payload = _request_payload(seed)
    del payload["category_id"]
    response = client.post("/api/v1/transaction-requests", json=payload, headers=auth_headers(seed.alice_id))
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "category_id" in error["details"]


def test_shared_expense_lifecycle(client, seed, auth_headers):
    alice, bob = auth_headers(seed.alice_id), auth_headers(seed.bob_id)

    created = client.post("/api/v1/expenses/shared", json=_expense_payload(seed), headers=alice)
    assert created.status_code == 201
    expense = created.json()["data"]
    assert expense["amount"] == "90.00"
    assert expense["total_owed"] == "90.00"
    assert expense["all_settled"] is False
    bob_share = next(p for p in expense["participants"] if p["payer"]["id"] == str(seed.bob_id))

    forbidden = client.patch(f"/api/v1/expenses/shares/{bob_share['id']}/paid", headers=bob)
    assert forbidden.status_code == 403

    paid = client.patch(f"/api/v1/expenses/shares/{bob_share['id']}/paid", headers=alice)
    assert paid.status_code == 200
    assert paid.json()["data"]["status"] == "PAID"
    assert paid.json()["data"]["paid_at"] is not None

    repeat = client.patch(f"/api/v1/expenses/shares/{bob_share['id']}/paid", headers=alice)
    assert repeat.status_code == 400
    assert "paid" in repeat.json()["error"]["message"]

    cancel = client.delete(f"/api/v1/expenses/shared/{expense['id']}", headers=alice)
    assert cancel.status_code == 400
    assert cancel.json()["error"]["message"] == "Cannot cancel expense when participants have already paid"


def test_cancel_then_listing_is_empty(client, seed, auth_headers):
    alice = auth_headers(seed.alice_id)
    expense = client.post("/api/v1/expenses/shared", json=_expense_payload(seed), headers=alice).json()["data"]

    cancel = client.delete(f"/api/v1/expenses/shared/{expense['id']}", headers=alice)
    assert cancel.status_code == 200
    assert cancel.json()["data"] == {"deleted": True}

    page = client.get("/api/v1/expenses/shared", headers=alice).json()["data"]
    assert page == {"expenses": [], "total": 0, "has_more": False}


def test_listings_and_balances(client, seed, auth_headers):
    alice, bob = auth_headers(seed.alice_id), auth_headers(seed.bob_id)
    for _ in range(2):
        client.post("/api/v1/expenses/shared", json=_expense_payload(seed), headers=alice)

    page = client.get("/api/v1/expenses/shared", params={"limit": 1}, headers=alice).json()["data"]
    assert page["total"] == 2
    assert page["has_more"] is True
    assert len(page["expenses"]) == 1

    mine = client.get("/api/v1/expenses/shared-with-me", headers=bob).json()["data"]
    assert mine["total"] == 2
    assert mine["participations"][0]["shared_expense"]["owner"]["email"] == "alice@example.com"

    balances = client.get("/api/v1/expenses/balances", headers=bob).json()["data"]
    assert balances == [{
        "user": {"id": str(seed.alice_id), "email": "alice@example.com", "display_name": "Alice"},
        "currency": "USD",
        "you_owe": "60.00",
        "they_owe": "0.00",
        "net_balance": "-60.00",
    }]


def test_bad_listing_params_are_400(client, seed, auth_headers):
    alice = auth_headers(seed.alice_id)
    assert client.get("/api/v1/expenses/shared", params={"status": "overdue"}, headers=alice).status_code == 400
    assert client.get("/api/v1/expenses/shared", params={"limit": "many"}, headers=alice).status_code == 400
    assert client.get("/api/v1/expenses/shared", params={"limit": 0}, headers=alice).status_code == 400


def test_rate_limit_returns_429_with_retry_after(client, seed, auth_headers):
    app.state.rate_limiter = RateLimiter(max_requests=2, window_seconds=60)
    alice = auth_headers(seed.alice_id)

    first = client.get("/api/v1/users/me", headers=alice)
    assert first.headers["X-RateLimit-Remaining"] == "1"
    client.get("/api/v1/users/me", headers=alice)

    blocked = client.get("/api/v1/users/me", headers=alice)
    assert blocked.status_code == 429
    assert blocked.json()["error"]["code"] == "RATE_LIMITED"
    assert int(blocked.headers["Retry-After"]) >= 1

    # Quotas are per user
    assert client.get("/api/v1/users/me", headers=auth_headers(seed.bob_id)).status_code == 200


def test_oversized_amount_is_400(client, seed, auth_headers):
    response = client.post(
        "/api/v1/transaction-requests",
        json=_request_payload(seed, amount="1e30"),
        headers=auth_headers(seed.alice_id),
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "amount" in error["details"]


def test_lookup_user_by_email(client, seed, auth_headers):
    alice = auth_headers(seed.alice_id)

    found = client.get("/api/v1/users/lookup", params={"email": "  Bob@Example.com "}, headers=alice)
    assert found.status_code == 200
    assert found.json()["data"]["user"] == {
        "id": str(seed.bob_id), "email": "bob@example.com", "display_name": "Bob",
    }

    own = client.get("/api/v1/users/lookup", params={"email": "ALICE@example.com"}, headers=alice)
    assert own.status_code == 400
    assert own.json()["error"]["details"] == {"email": ["Expenses can only be shared with others."]}

    unknown = client.get("/api/v1/users/lookup", params={"email": "nobody@example.com"}, headers=alice)
    assert unknown.status_code == 400
    assert unknown.json()["error"]["message"] == "No user found with this email"

    missing = client.get("/api/v1/users/lookup", headers=alice)
    assert missing.status_code == 400
