"""
Tests for Remita RRR generation and verification.
"""
import hashlib
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi import HTTPException

from remie.models.payment import Payment, PaymentStatus
from remie.models.receipt import Receipt
from remie.models.rrr_payment import RRRPayment
from remie.services.remita_service import RemitaService

RRR_REQUEST = {
    "amount": 45000,
    "institution_code": "UNILAG",
    "institution_name": "University of Lagos",
    "payer_name": "Ada Obi",
    "payer_email": "ada@example.com",
    "payer_phone": "08031234567",
    "description": "2024/2025 school fees",
}

REMITA_OK = {"statuscode": "025", "RRR": "290007854321", "status": "Payment Reference generated"}


def generate(client, headers, remita_response=REMITA_OK):
    with patch.object(RemitaService, "payment_init", return_value=remita_response) as mock_init:
        response = client.post("/api/v1/rrr/generate", headers=headers, json=RRR_REQUEST)
    return response, mock_init


class TestRemitaClient:

    def test_generate_hash_is_sha512_of_parts(self):
        expected = hashlib.sha512("2547916443073110045000".encode()).hexdigest()

        assert RemitaService.generate_hash("2547916", "4430731", "100", "45000") == expected

    def test_format_amount(self):
        assert RemitaService.format_amount(45000.0) == "45000"
        assert RemitaService.format_amount(100.5) == "100.50"

    def test_payment_init_sends_signed_request(self):
        response = MagicMock()
        response.json.return_value = REMITA_OK

        with patch("remie.services.remita_service.requests.post", return_value=response) as mock_post:
            data = RemitaService.payment_init(
                order_id="REMIE-1", amount=45000, service_type_id="4430731",
                payer_name="Ada Obi", payer_email="ada@example.com",
                payer_phone="08031234567", description="Fees",
            )

        assert data["RRR"] == "290007854321"
        url = mock_post.call_args[0][0]
        assert url.endswith("/echannelsvc/merchant/api/paymentinit")
        token = RemitaService.generate_hash("2547916", "4430731", "REMIE-1", "45000", "1946")
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == (
            f"remitaConsumerKey=2547916,remitaConsumerToken={token}"
        )
        assert mock_post.call_args.kwargs["json"]["amount"] == "45000"

    def test_payment_init_refused(self):
        response = MagicMock()
        response.json.return_value = {"statuscode": "012", "status": "Invalid request"}

        with patch("remie.services.remita_service.requests.post", return_value=response):
            with pytest.raises(HTTPException) as exc:
                RemitaService.payment_init("REMIE-1", 100, "1", "A", "a@b.com", "0803", "x")

        assert exc.value.status_code == 502

    def test_payment_status_network_error(self):
        with patch("remie.services.remita_service.requests.get",
                   side_effect=requests.exceptions.ConnectionError("down")):
            with pytest.raises(HTTPException) as exc:
                RemitaService.payment_status("290007854321")

        assert exc.value.status_code == 502
        assert exc.value.detail == "Failed to verify RRR"

    def test_is_paid(self):
        assert RemitaService.is_paid({"status": "00"})
        assert RemitaService.is_paid({"status": "01"})
        assert not RemitaService.is_paid({"status": "021"})


class TestGenerate:

    def test_generate_rrr(self, client, student, student_headers, test_db):
        response, mock_init = generate(client, student_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["rrr"] == "290007854321"
        assert data["status"] == "INITIATED"
        assert data["order_id"].startswith("REMIE-")
        assert data["service_type_id"] == "4430731"

        expires_at = datetime.fromisoformat(data["expires_at"])
        assert timedelta(days=6, hours=23) < expires_at - datetime.utcnow() <= timedelta(days=7)

        payment = test_db.query(Payment).filter(Payment.reference == data["order_id"]).one()
        assert payment.status == PaymentStatus.PENDING
        assert payment.institution_name == "University of Lagos"
        assert mock_init.call_args.kwargs["order_id"] == data["order_id"]

    def test_order_ids_unique_within_same_millisecond(self, client, student_headers):
        second_rrr = {**REMITA_OK, "RRR": "290007854322"}

        with patch("remie.services.rrr_service.time.time", return_value=1700000000.0):
            first, _ = generate(client, student_headers)
            second, _ = generate(client, student_headers, remita_response=second_rrr)

        assert first.status_code == second.status_code == 201
        assert first.json()["order_id"].startswith("REMIE-1700000000000-")
        assert first.json()["order_id"] != second.json()["order_id"]

    def test_generate_remita_failure(self, client, student_headers, test_db):
        error = HTTPException(status_code=502, detail="Failed to generate RRR")
        with patch.object(RemitaService, "payment_init", side_effect=error):
            response = client.post("/api/v1/rrr/generate", headers=student_headers, json=RRR_REQUEST)

        assert response.status_code == 502
        assert test_db.query(RRRPayment).count() == 0
        assert test_db.query(Payment).one().status == PaymentStatus.FAILED

    def test_generate_invalid_email(self, client, student_headers):
        response = client.post(
            "/api/v1/rrr/generate", headers=student_headers, json={**RRR_REQUEST, "payer_email": "nope"}
        )

        assert response.status_code == 422


class TestVerify:

    def test_verify_paid(self, client, student, student_headers, test_db):
        generate(client, student_headers)

        with patch.object(RemitaService, "payment_status",
                          return_value={"status": "00", "transactionRef": "TX-1"}) as mock_status:
            response = client.get("/api/v1/rrr/verify/290007854321", headers=student_headers)
            again = client.get("/api/v1/rrr/verify/290007854321", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "PAID"
        assert data["payment_status"] == "COMPLETED"
        assert data["message"] == "Payment successful"
        assert again.json()["status"] == "PAID"
        assert mock_status.call_count == 1

        rrr_payment = test_db.query(RRRPayment).one()
        assert rrr_payment.remita_reference == "TX-1"
        assert test_db.query(Receipt).filter(Receipt.payment_id == rrr_payment.payment_id).count() == 1

    def test_verify_pending(self, client, student_headers):
        generate(client, student_headers)

        with patch.object(RemitaService, "payment_status", return_value={"status": "021"}):
            response = client.get("/api/v1/rrr/verify/290007854321", headers=student_headers)

        assert response.json()["status"] == "INITIATED"
        assert response.json()["message"] == "Payment pending"

    def test_verify_unpaid_after_expiry(self, client, student_headers, test_db):
        generate(client, student_headers)
        rrr_payment = test_db.query(RRRPayment).one()
        rrr_payment.expires_at = datetime.utcnow() - timedelta(minutes=1)
        test_db.commit()

        with patch.object(RemitaService, "payment_status", return_value={"status": "021"}):
            response = client.get("/api/v1/rrr/verify/290007854321", headers=student_headers)

        assert response.json()["status"] == "EXPIRED"

    def test_verify_other_users_rrr(self, client, student_headers, make_user, headers_for):
        generate(client, student_headers)
        other = make_user()

        response = client.get("/api/v1/rrr/verify/290007854321", headers=headers_for(other))

        assert response.status_code == 404


class TestList:

    def test_list_and_get(self, client, student_headers):
        generate(client, student_headers)

        listing = client.get("/api/v1/rrr/list", headers=student_headers)
        single = client.get("/api/v1/rrr/290007854321", headers=student_headers)

        assert listing.status_code == 200
        assert listing.json()["pagination"]["total"] == 1
        assert single.json()["institution_code"] == "UNILAG"

    def test_get_missing(self, client, student_headers):
        response = client.get("/api/v1/rrr/000000000000", headers=student_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "RRR not found"
