"""
HTTP surface: signup, stamp-add and wallet lookup.

Guards against:
1. Error kinds that can only be told apart by message text
2. Response shapes drifting from what the scanner page reads
3. Signup resetting an existing card
"""
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from database.sqlite import SQLiteStorage

QR_SECRET = "PASTA123"


@pytest.fixture
def client(settings, clock):
    app = create_app(settings=settings, storage=SQLiteStorage(settings.database_path), clock=clock)
    with TestClient(app) as test_client:
        yield test_client


def stamp(client, identifier="a@x.com", token=QR_SECRET):
    return client.post("/api/stamps/add", json={"identifier": identifier, "token": token})


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

def test_signup_returns_customer_and_stamps(client):
    response = client.post("/api/signup", json={"name": "Ana", "email": "a@x.com"})

    assert response.status_code == 200
    assert response.json() == {
        "customer": {"id": "a@x.com", "name": "Ana", "email": "a@x.com", "phone": None},
        "wallet": {"stamps": 0},
    }


def test_signup_is_idempotent(client, clock):
    first = client.post("/api/signup", json={"email": "a@x.com"}).json()
    stamp(client)
    second = client.post("/api/signup", json={"email": "a@x.com"}).json()

    assert second["customer"]["id"] == first["customer"]["id"]
    assert second["wallet"]["stamps"] == 1


def test_signup_with_phone(client):
    response = client.post("/api/signup", json={"phone": "0400111222"})
    assert response.json()["customer"]["id"] == "0400111222"


def test_signup_with_blank_email_falls_back_to_phone(client):
    response = client.post("/api/signup", json={"name": "", "email": "", "phone": "0400111222"})

    assert response.status_code == 200
    assert response.json()["customer"] == {
        "id": "0400111222", "name": None, "email": None, "phone": "0400111222",
    }


def test_signup_keeps_email_as_typed(client):
    signed_up = client.post("/api/signup", json={"email": "Ana@Example.COM"}).json()
    stamped = stamp(client, identifier="Ana@Example.COM").json()

    assert signed_up["customer"]["id"] == "Ana@Example.COM"
    assert signed_up["customer"]["email"] == "Ana@Example.COM"
    assert stamped["customerId"] == "Ana@Example.COM"
    assert stamped["stamps"] == 1


def test_signup_without_contact_is_validation_error(client):
    response = client.post("/api/signup", json={"name": "Ana"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


def test_signup_with_malformed_email_is_validation_error(client):
    response = client.post("/api/signup", json={"email": "not-an-email"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


# ---------------------------------------------------------------------------
# Stamp-add
# ---------------------------------------------------------------------------

def test_stamp_success_shape(client):
    response = stamp(client)

    assert response.status_code == 200
    assert response.json() == {
        "customerId": "a@x.com",
        "stamps": 1,
        "redeemed": False,
        "reward_message": None,
    }


def test_stamp_cooldown_shape(client, clock):
    stamp(client)
    clock.advance(10)
    response = stamp(client)

    assert response.status_code == 200
    assert response.json() == {
        "customerId": "a@x.com",
        "stamps": 1,
        "cooldown": True,
        "seconds_remaining": 110,
        "cooldown_minutes": 2,
    }


def test_card_cycle_over_http(client, clock):
    assert client.post("/api/signup", json={"email": "a@x.com"}).json()["wallet"]["stamps"] == 0

    bodies = []
    for _ in range(9):
        bodies.append(stamp(client).json())
        clock.advance(121)

    assert [b["stamps"] for b in bodies] == list(range(1, 10))
    assert bodies[-1]["reward_message"]
    assert bodies[-1]["redeemed"] is False

    tenth = stamp(client).json()
    assert tenth["stamps"] == 0
    assert tenth["redeemed"] is True


def test_bad_token_is_unauthorized_and_creates_nothing(client):
    response = stamp(client, identifier="new@x.com", token="WRONG")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "unauthorized"
    assert client.get("/api/wallets/new@x.com").status_code == 404


def test_missing_identifier_is_validation_error(client):
    response = client.post("/api/stamps/add", json={"token": QR_SECRET})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


# ---------------------------------------------------------------------------
# Wallet lookup and health
# ---------------------------------------------------------------------------

def test_wallet_lookup(client, clock):
    stamp(client, identifier="0400111222")
    response = client.get("/api/wallets/0400111222")

    assert response.status_code == 200
    body = response.json()
    assert body["customer"]["phone"] == "0400111222"
    assert body["wallet"]["stamps"] == 1
    assert body["wallet"]["last_stamped_at"] is not None
    assert body["wallet"]["last_redeemed_at"] is None


def test_unknown_wallet_is_not_found(client):
    response = client.get("/api/wallets/ghost@x.com")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
