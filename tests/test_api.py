import uuid

from quotelink.auth import create_token

QUOTE_BODY = {
    "client_name": "Dana Client",
    "client_email": "dana@example.com",
    "job_description": "Deck repair",
    "options": [
        {"title": "Repair", "description": "Patch boards", "price": 100},
        {"title": "Rebuild", "price": 150},
    ],
}


def _create(client, headers, body=QUOTE_BODY):
    resp = client.post("/quotes", json=body, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_quotes_require_bearer_token(client):
    resp = client.get("/quotes")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


def test_quotes_reject_bad_token(client, settings):
    resp = client.get("/quotes", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}


def test_token_signed_with_other_secret_is_rejected(client, settings):
    from dataclasses import replace
    forged = create_token(str(uuid.uuid4()), replace(settings, jwt_secret="someone-else"))
    resp = client.get("/quotes", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401


def test_create_quote_returns_quote_and_options(client, make_owner):
    owner_id, headers = make_owner()
    data = _create(client, headers)

    assert data["quote"]["status"] == "draft"
    assert data["quote"]["owner_id"] == owner_id
    assert [o["title"] for o in data["options"]] == ["Repair", "Rebuild"]
    assert [o["option_order"] for o in data["options"]] == [1, 2]


def test_create_quote_validates_body(client, make_owner):
    _, headers = make_owner()

    no_options = dict(QUOTE_BODY, options=[])
    resp = client.post("/quotes", json=no_options, headers=headers)
    assert resp.status_code == 400
    assert "options" in resp.json()["error"]

    negative = dict(QUOTE_BODY, options=[{"title": "Cheap", "price": -1}])
    assert client.post("/quotes", json=negative, headers=headers).status_code == 400

    bad_email = dict(QUOTE_BODY, client_email="not-an-email")
    assert client.post("/quotes", json=bad_email, headers=headers).status_code == 400


def test_list_quotes_is_scoped_to_caller(client, make_owner):
    _, headers_a = make_owner("A Co")
    _, headers_b = make_owner("B Co")
    mine = _create(client, headers_a)
    _create(client, headers_b, dict(QUOTE_BODY, client_email="other@example.com"))

    resp = client.get("/quotes", headers=headers_a)
    assert resp.status_code == 200
    quotes = resp.json()["quotes"]
    assert [q["id"] for q in quotes] == [mine["quote"]["id"]]
    assert quotes[0]["clients"] == {"name": "Dana Client", "email": "dana@example.com"}
    assert len(quotes[0]["quote_options"]) == 2


def test_send_quote_of_other_owner_is_404(client, make_owner, db):
    _, headers_a = make_owner("A Co")
    _, headers_b = make_owner("B Co")
    theirs = _create(client, headers_b)

    resp = client.put(f"/quotes/{theirs['quote']['id']}/send", headers=headers_a)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Quote not found"}
    assert db.find("quotes", id=theirs["quote"]["id"])["status"] == "draft"


def test_send_quote_rejects_non_uuid_id(client, make_owner):
    _, headers = make_owner()
    assert client.put("/quotes/abc/send", headers=headers).status_code == 400


def test_public_quote_never_exposes_owner(client, make_owner):
    _, headers = make_owner("Deck Pros")
    created = _create(client, headers)
    client.put(f"/quotes/{created['quote']['id']}/send", headers=headers)

    resp = client.get(f"/public/quotes/{created['quote']['unique_link_id']}")
    assert resp.status_code == 200
    quote = resp.json()["quote"]
    assert "owner_id" not in quote
    assert "owner_id" not in resp.text
    assert quote["business_name"] == "Deck Pros"
    assert [o["title"] for o in quote["quote_options"]] == ["Repair", "Rebuild"]


def test_public_quote_unknown_link_is_404(client):
    resp = client.get("/public/quotes/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Quote not found"}


def test_accept_draft_quote_is_400(client, make_owner, db, checkout):
    _, headers = make_owner()
    created = _create(client, headers)

    resp = client.post(
        f"/public/quotes/{created['quote']['unique_link_id']}/accept",
        json={"option_id": created["options"][0]["id"]},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": 'Quote is not in "sent" status'}
    assert db.find("quotes", id=created["quote"]["id"])["status"] == "draft"
    assert checkout.created == []


def test_accept_twice_is_400_second_time(client, make_owner, db):
    _, headers = make_owner()
    created = _create(client, headers)
    client.put(f"/quotes/{created['quote']['id']}/send", headers=headers)
    link = created["quote"]["unique_link_id"]

    first = client.post(f"/public/quotes/{link}/accept", json={"option_id": created["options"][0]["id"]})
    second = client.post(f"/public/quotes/{link}/accept", json={"option_id": created["options"][1]["id"]})

    assert first.status_code == 200
    assert second.status_code == 400
    row = db.find("quotes", id=created["quote"]["id"])
    assert row["accepted_option_id"] == created["options"][0]["id"]


def test_accept_checkout_failure_is_502_and_quote_stays_sent(client, make_owner, db, checkout):
    _, headers = make_owner()
    created = _create(client, headers)
    client.put(f"/quotes/{created['quote']['id']}/send", headers=headers)
    checkout.fail_create = True

    resp = client.post(
        f"/public/quotes/{created['quote']['unique_link_id']}/accept",
        json={"option_id": created["options"][0]["id"]},
    )
    assert resp.status_code == 502
    assert resp.json() == {"error": "Failed to create checkout session"}
    assert db.find("quotes", id=created["quote"]["id"])["status"] == "sent"


def test_end_to_end_create_send_accept(client, make_owner, db):
    _, headers = make_owner()
    created = _create(client, headers)
    quote_id = created["quote"]["id"]
    option_2 = created["options"][1]

    sent = client.put(f"/quotes/{quote_id}/send", headers=headers)
    assert sent.status_code == 200
    assert sent.json()["quote"]["status"] == "sent"

    resp = client.post(
        f"/public/quotes/{created['quote']['unique_link_id']}/accept",
        json={"option_id": option_2["id"]},
    )
    assert resp.status_code == 200
    assert resp.json()["checkout_url"]

    listed = client.get("/quotes", headers=headers).json()["quotes"][0]
    assert listed["status"] == "accepted"
    assert listed["accepted_option_id"] == option_2["id"]


def test_unknown_route_is_404_with_error(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Route not found: GET /nowhere"}


def test_store_failure_is_generic_500(client, make_owner, db):
    _, headers = make_owner()
    db.fail("quotes", "select", RuntimeError("relation \"quotes\" does not exist"))

    resp = client.get("/quotes", headers=headers)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_health_endpoints(client, db):
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/health/db").json() == {"ok": True, "db": "up"}

    db.fail("quotes", "select", RuntimeError("connection refused"))
    resp = client.get("/health/db")
    assert resp.status_code == 503
    assert "connection refused" in resp.json()["error"]


def test_create_quote_failing_options_insert_is_500_and_rolled_back(client, make_owner, db):
    _, headers = make_owner()
    db.fail("quote_options", "insert", RuntimeError("insert failed"))

    resp = client.post("/quotes", json=QUOTE_BODY, headers=headers)
    assert resp.status_code == 500
    assert db.rows("quotes") == []
    assert client.get("/quotes", headers=headers).json() == {"quotes": []}


def test_create_quote_rejects_infinite_price(client, make_owner, db):
    _, headers = make_owner()
    body = (
        '{"client_name": "Dana", "client_email": "dana@example.com", "job_description": "Deck",'
        ' "options": [{"title": "Endless", "price": Infinity}]}'
    )
    resp = client.post("/quotes", content=body, headers={**headers, "content-type": "application/json"})
    assert resp.status_code == 400
    assert "price" in resp.json()["error"]
    assert db.rows("quotes") == []


def test_create_quote_rejects_price_beyond_column(client, make_owner, db):
    _, headers = make_owner()
    body = dict(QUOTE_BODY, options=[{"title": "Huge", "price": 1e15}])
    resp = client.post("/quotes", json=body, headers=headers)
    assert resp.status_code == 400
    assert "price" in resp.json()["error"]
    assert db.rows("quotes") == []


def test_create_quote_accepts_largest_column_price(client, make_owner):
    _, headers = make_owner()
    body = dict(QUOTE_BODY, options=[{"title": "Max", "price": 9999999999.99}])
    assert client.post("/quotes", json=body, headers=headers).status_code == 200
