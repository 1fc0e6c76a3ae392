"""
Tests for the Paystack webhook endpoint.
"""
from datetime import datetime
from unittest.mock import patch

import pytest

from remie.models.notification import Notification
from remie.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from remie.services.paystack_service import PaystackService

URL = "/api/v1/webhooks/paystack"


@pytest.fixture
def funding(student, test_db):
    payment = Payment(
        user_id=student.id,
        amount=3000,
        type=PaymentType.WALLET_FUNDING,
        method=PaymentMethod.CARD,
        status=PaymentStatus.PENDING,
        reference="REMIE_1700000000000_abcd1234",
        total_amount=3000,
    )
    test_db.add(payment)
    test_db.commit()
    return payment


@pytest.fixture
def withdrawal(student, test_db):
    """A 5,000 withdrawal in flight: available_balance already debited."""
    payment = Payment(
        user_id=student.id,
        amount=5000,
        type=PaymentType.WITHDRAWAL,
        method=PaymentMethod.BANK_TRANSFER,
        status=PaymentStatus.PROCESSING,
        reference="WDR_1700000000000_abcd1234",
        recipient_name="ADA OBI",
        total_amount=5000,
        created_at=datetime.utcnow(),
    )
    test_db.add(payment)
    student.wallet.available_balance = 15000.0
    test_db.commit()
    return payment


class TestSignature:

    def test_missing_signature(self, client):
        response = client.post(URL, json={"event": "charge.success", "data": {}})

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing signature"

    def test_invalid_signature(self, client):
        response = client.post(
            URL,
            content=b'{"event": "charge.success", "data": {}}',
            headers={"x-paystack-signature": "deadbeef", "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid signature"

    def test_unknown_event_acknowledged(self, client, paystack_signed):
        body, headers = paystack_signed({"event": "subscription.create", "data": {}})

        response = client.post(URL, content=body, headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Webhook processed"


class TestChargeSuccess:

    def test_charge_success_credits_wallet(self, client, student, funding, test_db, paystack_signed):
        body, headers = paystack_signed({
            "event": "charge.success",
            "data": {"reference": funding.reference, "amount": 300000, "status": "success"},
        })

        with patch.object(PaystackService, "verify_transaction",
                          return_value={"status": "success", "amount": 300000}):
            response = client.post(URL, content=body, headers=headers)
            # Paystack retries the same event
            client.post(URL, content=body, headers=headers)

        assert response.status_code == 200
        test_db.refresh(funding)
        test_db.refresh(student.wallet)
        assert funding.status == PaymentStatus.COMPLETED
        assert student.wallet.balance == 23000.0
        assert student.wallet.daily_funding_spent == 3000.0

    def test_charge_success_unknown_reference(self, client, student, test_db, paystack_signed):
        body, headers = paystack_signed({
            "event": "charge.success",
            "data": {"reference": "NOPE", "amount": 300000},
        })

        response = client.post(URL, content=body, headers=headers)

        assert response.status_code == 200
        test_db.refresh(student.wallet)
        assert student.wallet.balance == 20000.0

    def test_processing_error_still_acknowledged(self, client, funding, test_db, paystack_signed):
        body, headers = paystack_signed({
            "event": "charge.success",
            "data": {"reference": funding.reference, "amount": 300000},
        })

        with patch.object(PaystackService, "verify_transaction",
                          return_value={"status": "failed", "gateway_response": "Declined"}):
            response = client.post(URL, content=body, headers=headers)

        assert response.status_code == 200
        test_db.refresh(funding)
        assert funding.status == PaymentStatus.FAILED


class TestTransferEvents:

    def test_transfer_success_settles_withdrawal(self, client, student, withdrawal, test_db, paystack_signed):
        body, headers = paystack_signed({"event": "transfer.success", "data": {"reference": withdrawal.reference}})

        client.post(URL, content=body, headers=headers)
        client.post(URL, content=body, headers=headers)

        test_db.refresh(withdrawal)
        test_db.refresh(student.wallet)
        assert withdrawal.status == PaymentStatus.COMPLETED
        assert student.wallet.balance == 15000.0
        assert student.wallet.ledger_balance == 15000.0
        assert student.wallet.available_balance == 15000.0

        notification = test_db.query(Notification).filter(Notification.type == "WITHDRAWAL_COMPLETED").one()
        assert notification.user_id == student.id

    def test_transfer_failed_refunds(self, client, student, withdrawal, test_db, paystack_signed):
        body, headers = paystack_signed({"event": "transfer.failed", "data": {"reference": withdrawal.reference}})

        client.post(URL, content=body, headers=headers)
        client.post(URL, content=body, headers=headers)

        test_db.refresh(withdrawal)
        test_db.refresh(student.wallet)
        assert withdrawal.status == PaymentStatus.FAILED
        assert student.wallet.available_balance == 20000.0
        assert student.wallet.balance == 20000.0

    def test_transfer_reversed_after_success(self, client, student, withdrawal, test_db, paystack_signed):
        success_body, headers = paystack_signed({
            "event": "transfer.success", "data": {"reference": withdrawal.reference},
        })
        client.post(URL, content=success_body, headers=headers)

        reversed_body, headers = paystack_signed({
            "event": "transfer.reversed", "data": {"reference": withdrawal.reference},
        })
        client.post(URL, content=reversed_body, headers=headers)

        test_db.refresh(withdrawal)
        test_db.refresh(student.wallet)
        assert withdrawal.status == PaymentStatus.REFUNDED
        assert student.wallet.balance == 20000.0
        assert student.wallet.available_balance == 20000.0
        assert student.wallet.ledger_balance == 20000.0

    def test_transfer_event_ignores_funding_payment(self, client, student, funding, test_db, paystack_signed):
        body, headers = paystack_signed({"event": "transfer.failed", "data": {"reference": funding.reference}})

        client.post(URL, content=body, headers=headers)

        test_db.refresh(funding)
        test_db.refresh(student.wallet)
        assert funding.status == PaymentStatus.PENDING
        assert student.wallet.available_balance == 20000.0
