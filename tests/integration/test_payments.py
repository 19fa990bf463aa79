"""
Integration tests for the payment ledger.
"""
import pytest
from sqlalchemy import func, select

from app.models.payment import Payment
from tests.conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID, WORKER_ID, auth_headers


def _pay(booking_id, method="upi", transaction_id="TXN-001"):
    return {"booking_id": booking_id, "method": method, "transaction_id": transaction_id}


async def _payment_count(session_factory, booking_id):
    async with session_factory() as db:
        result = await db.execute(select(func.count(Payment.id)).where(Payment.booking_id == booking_id))
        return result.scalar_one()


async def _status(client, booking_id, headers):
    return (await client.get(f"/v1/bookings/{booking_id}", headers=headers)).json()["status"]


@pytest.mark.asyncio
class TestRecordPayment:
    async def test_pay_pending_booking_confirms_it(self, client, make_booking, customer_headers):
        booking_id = await make_booking("pending")
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id))
        assert resp.status_code == 201, resp.json()
        body = resp.json()
        assert body["booking_id"] == booking_id
        assert body["worker_id"] == WORKER_ID
        assert body["amount"] == 200.0
        assert body["platform_fee"] == 80.0
        assert body["method"] == "upi"
        assert body["transaction_id"] == "TXN-001"
        assert body["status"] == "completed"
        assert await _status(client, booking_id, customer_headers) == "confirmed"

    @pytest.mark.parametrize("status", ["confirmed", "in_progress"])
    async def test_pay_later_stage_keeps_status(self, client, make_booking, customer_headers, status):
        booking_id = await make_booking(status)
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id))
        assert resp.status_code == 201
        assert await _status(client, booking_id, customer_headers) == status

    async def test_payment_never_completes_booking(self, client, make_booking, customer_headers):
        booking_id = await make_booking("in_progress")
        await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id))
        assert await _status(client, booking_id, customer_headers) != "completed"

    async def test_second_payment_is_rejected(self, client, make_booking, customer_headers, session_factory):
        booking_id = await make_booking("pending")
        first = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id))
        assert first.status_code == 201

        for txn in ("TXN-001", "TXN-002"):
            again = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id, transaction_id=txn))
            assert again.status_code == 409
            assert again.json()["code"] == "duplicate_payment"

        assert await _payment_count(session_factory, booking_id) == 1

    async def test_qr_alias(self, client, make_booking, customer_headers):
        booking_id = await make_booking("pending")
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id, method="QR"))
        assert resp.status_code == 201
        assert resp.json()["method"] == "upi"

    async def test_invalid_method(self, client, make_booking, customer_headers, session_factory):
        booking_id = await make_booking("pending")
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id, method="cash"))
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_method"
        assert await _payment_count(session_factory, booking_id) == 0
        assert await _status(client, booking_id, customer_headers) == "pending"

    @pytest.mark.parametrize("txn", ["", "   ", None])
    async def test_missing_reference(self, client, make_booking, customer_headers, txn):
        booking_id = await make_booking("pending")
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id, transaction_id=txn))
        assert resp.status_code == 422
        assert resp.json()["code"] == "missing_reference"

    async def test_duplicate_checked_before_method(self, client, make_booking, customer_headers):
        booking_id = await make_booking("pending")
        await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id))
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id, method="cash"))
        assert resp.json()["code"] == "duplicate_payment"

    @pytest.mark.parametrize("status", ["completed", "cancelled", "rejected"])
    async def test_terminal_booking_not_payable(self, client, make_booking, customer_headers, session_factory, status):
        booking_id = await make_booking(status)
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id))
        assert resp.status_code == 409
        assert resp.json()["code"] == "invalid_state"
        assert resp.json()["details"]["current_status"] == status
        assert await _payment_count(session_factory, booking_id) == 0

    async def test_other_customer_unauthorized(self, client, make_booking, session_factory):
        booking_id = await make_booking("pending")
        resp = await client.post(
            "/v1/payments", headers=auth_headers(OTHER_CUSTOMER_ID, "customer"), json=_pay(booking_id)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "unauthorized"
        assert "amount" not in resp.json()["details"]
        assert await _payment_count(session_factory, booking_id) == 0

    async def test_missing_booking_unauthorized(self, client, worker, customer_headers):
        resp = await client.post("/v1/payments", headers=customer_headers, json=_pay(555))
        assert resp.status_code == 403
        assert resp.json()["code"] == "unauthorized"

    async def test_worker_cannot_pay(self, client, make_booking, worker_headers, session_factory):
        booking_id = await make_booking("pending")
        resp = await client.post("/v1/payments", headers=worker_headers, json=_pay(booking_id))
        assert resp.status_code == 403
        assert resp.json()["code"] == "unauthorized"
        assert await _payment_count(session_factory, booking_id) == 0

    async def test_customer_id_with_worker_role_unauthorized(self, client, make_booking, session_factory):
        booking_id = await make_booking("pending")
        resp = await client.post("/v1/payments", headers=auth_headers(CUSTOMER_ID, "worker"), json=_pay(booking_id))
        assert resp.status_code == 403
        assert resp.json()["code"] == "unauthorized"
        assert await _payment_count(session_factory, booking_id) == 0


@pytest.mark.asyncio
class TestPaymentQueries:
    async def test_check_payment(self, client, make_booking, customer_headers, worker_headers, outsider_headers):
        booking_id = await make_booking("pending")

        resp = await client.get(f"/v1/payments/check/{booking_id}", headers=customer_headers)
        assert resp.json()["has_payment"] is False

        paid = (await client.post("/v1/payments", headers=customer_headers, json=_pay(booking_id))).json()

        for headers in (customer_headers, worker_headers):
            resp = await client.get(f"/v1/payments/check/{booking_id}", headers=headers)
            body = resp.json()
            assert body["has_payment"] is True
            assert body["payment_id"] == paid["id"]
            assert body["payment_status"] == "completed"

        resp = await client.get(f"/v1/payments/check/{booking_id}", headers=outsider_headers)
        assert resp.status_code == 404

    async def test_history(self, client, make_booking, customer_headers, worker_headers):
        first = await make_booking("pending")
        second = await make_booking("confirmed")
        await client.post("/v1/payments", headers=customer_headers, json=_pay(first))
        await client.post("/v1/payments", headers=customer_headers, json=_pay(second, method="stripe"))

        customer_view = (await client.get("/v1/payments", headers=customer_headers)).json()
        worker_view = (await client.get("/v1/payments", headers=worker_headers)).json()
        assert {p["booking_id"] for p in customer_view} == {first, second}
        assert {p["booking_id"] for p in worker_view} == {first, second}

        other = await client.get("/v1/payments", headers=auth_headers(OTHER_CUSTOMER_ID, "customer"))
        assert other.json() == []

    async def test_upi_request_is_read_only(self, client, make_booking, customer_headers, session_factory):
        booking_id = await make_booking("pending")
        resp = await client.get(f"/v1/payments/upi/{booking_id}", headers=customer_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["uri"].startswith("upi://pay?")
        assert "am=200.00" in body["uri"]
        assert body["amount"] == 200.0
        assert body["currency"] == "INR"
        assert await _payment_count(session_factory, booking_id) == 0
        assert await _status(client, booking_id, customer_headers) == "pending"

    async def test_upi_request_hidden_from_outsiders(self, client, make_booking, outsider_headers):
        booking_id = await make_booking("pending")
        resp = await client.get(f"/v1/payments/upi/{booking_id}", headers=outsider_headers)
        assert resp.status_code == 404
