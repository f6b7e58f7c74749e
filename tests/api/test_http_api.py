import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_card_service, get_payment_service
from application.services.card_service import CardApplicationService
from application.services.payment_service import PaymentApplicationService
from main import app


CARD = {
    "card_number": "4111111111111111",
    "card_name": "Alice",
    "expiration_date": "2030-12-31",
    "cvv": 123,
    "currency_type": "usd",
}


@pytest_asyncio.fixture
async def client(uow_factory, code_generator, clock):
    card_service = CardApplicationService(uow_factory=uow_factory)
    payment_service = PaymentApplicationService(
        uow_factory=uow_factory,
        code_generator=code_generator,
        clock=clock,
        code_validity_minutes=10,
    )
    app.dependency_overrides[get_card_service] = lambda: card_service
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def _funded_card(client, amount="1000"):
    resp = await client.post("/api/v1/cards", json=CARD)
    assert resp.status_code == 201
    card = resp.json()["data"]
    resp = await client.post(f"/api/v1/cards/{card['id']}/increase-balance", json={"amount": amount})
    assert resp.status_code == 200
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"status": "healthy"}


@pytest.mark.asyncio
async def test_create_card_ignores_balance_and_hides_cvv(client):
    resp = await client.post("/api/v1/cards", json={**CARD, "balance": "5000"})

    assert resp.status_code == 201
    body = resp.json()
    assert body["code"] == 0
    assert body["data"]["balance"] == "0.00"
    assert body["data"]["currency_type"] == "USD"
    assert "cvv" not in body["data"]
    assert "X-Request-ID" in resp.headers


@pytest.mark.asyncio
async def test_duplicate_card_number_conflict(client):
    await client.post("/api/v1/cards", json=CARD)
    resp = await client.post("/api/v1/cards", json=CARD)
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "CardNumberAlreadyExists"


@pytest.mark.asyncio
async def test_invalid_card_payload(client):
    resp = await client.post("/api/v1/cards", json={**CARD, "card_number": "abc"})
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "ValidationError"


@pytest.mark.asyncio
async def test_card_lookup_update_delete(client):
    card = await _funded_card(client)

    resp = await client.get(f"/api/v1/cards/by-number/{CARD['card_number']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == card["id"]

    resp = await client.put(f"/api/v1/cards/{card['id']}", json={"card_name": "Alice Smith"})
    assert resp.status_code == 200
    assert resp.json()["data"]["card_name"] == "Alice Smith"
    assert resp.json()["data"]["balance"] == "1000.00"

    resp = await client.get("/api/v1/cards", params={"page": 1, "size": 10})
    assert resp.status_code == 200
    assert resp.json()["data"]["total"] == 1

    resp = await client.delete(f"/api/v1/cards/{card['id']}")
    assert resp.status_code == 200
    resp = await client.get(f"/api/v1/cards/{card['id']}")
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "CardNotFound"


@pytest.mark.asyncio
async def test_decrease_balance_errors(client):
    card = await _funded_card(client, amount="50")

    resp = await client.post(f"/api/v1/cards/{card['id']}/decrease-balance", json={"amount": "60"})
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "InsufficientFunds"

    resp = await client.post(f"/api/v1/cards/{card['id']}/decrease-balance", json={"amount": "0"})
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "InvalidAmount"


@pytest.mark.asyncio
async def test_payment_lifecycle(client):
    card = await _funded_card(client)

    resp = await client.post("/api/v1/payments/process", json={
        "card_id": card["id"],
        "total_amount": "100",
        "currency": "USD",
        "unreturnable_fee": "30",
    })
    assert resp.status_code == 200
    pending = resp.json()["data"]
    assert pending["confirmation_code"] == "ABC123"

    resp = await client.get(f"/api/v1/transactions/{pending['transaction_id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Pending"
    assert "confirmation_code" not in resp.json()["data"]

    resp = await client.post("/api/v1/payments/confirm", json={
        "transaction_id": pending["transaction_id"],
        "confirmation_code": "ABC123",
    })
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Confirmed"
    assert resp.json()["data"]["balance"] == "900.00"

    resp = await client.post(f"/api/v1/payments/return/{pending['transaction_id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Returned"
    assert resp.json()["data"]["balance"] == "970.00"

    resp = await client.post(f"/api/v1/payments/cancel/{pending['transaction_id']}")
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "InvalidTransactionState"


@pytest.mark.asyncio
async def test_payment_failures(client, clock):
    card = await _funded_card(client)

    resp = await client.post("/api/v1/payments/process", json={
        "card_id": card["id"], "total_amount": "100", "currency": "EUR",
    })
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "CurrencyMismatch"

    resp = await client.post("/api/v1/payments/process", json={
        "card_id": 999, "total_amount": "100", "currency": "USD",
    })
    assert resp.status_code == 404

    resp = await client.post("/api/v1/payments/process", json={
        "card_id": card["id"], "total_amount": "100", "currency": "USD",
    })
    pending = resp.json()["data"]

    resp = await client.post("/api/v1/payments/confirm", json={
        "transaction_id": pending["transaction_id"], "confirmation_code": "WRONG1",
    })
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "ConfirmationCodeMismatch"

    clock.advance(minutes=30)
    resp = await client.post("/api/v1/payments/confirm", json={
        "transaction_id": pending["transaction_id"], "confirmation_code": "ABC123",
    })
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "ConfirmationCodeExpired"

    resp = await client.post(f"/api/v1/payments/cancel/{pending['transaction_id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Canceled"
    assert resp.json()["data"]["balance"] == "1000.00"

    resp = await client.post("/api/v1/payments/cancel/4242")
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "TransactionNotFound"


@pytest.mark.asyncio
async def test_list_transactions_by_status(client):
    card = await _funded_card(client)
    for amount in ("10", "20"):
        await client.post("/api/v1/payments/process", json={
            "card_id": card["id"], "total_amount": amount, "currency": "USD",
        })

    resp = await client.get("/api/v1/transactions", params={"card_id": card["id"], "status": "Pending"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 2
    assert data["page"] == 1

    resp = await client.get("/api/v1/transactions", params={"status": "Unknown"})
    assert resp.status_code == 422
