"""
Tests for receipts and in-app notifications.
"""
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from remie.core.config import get_settings
from remie.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from remie.services.email_service import EmailService
from remie.services.notification_service import NotificationService
from remie.services.receipt_service import ReceiptService


@pytest.fixture
def completed_payment(student, test_db):
    payment = Payment(
        user_id=student.id,
        amount=45000,
        type=PaymentType.SCHOOL_FEE,
        method=PaymentMethod.RRR,
        status=PaymentStatus.COMPLETED,
        reference="REMIE-1700000000000",
        institution_name="University of Lagos",
        description="School fees",
        total_amount=45000,
    )
    test_db.add(payment)
    test_db.commit()
    return payment


class TestReceipts:

    def test_generate_receipt(self, completed_payment, test_db):
        receipt = ReceiptService.generate_receipt(test_db, completed_payment)

        assert receipt.receipt_number.startswith("RCP-")
        assert receipt.verification_url == f"http://localhost:3000/verify-receipt/{receipt.receipt_number}"
        assert receipt.receipt_metadata["institution_name"] == "University of Lagos"
        assert receipt.receipt_metadata["payment_method"] == "RRR"

    def test_generate_receipt_is_idempotent(self, completed_payment, test_db):
        first = ReceiptService.generate_receipt(test_db, completed_payment)
        second = ReceiptService.generate_receipt(test_db, completed_payment)

        assert first.id == second.id

    def test_receipt_notification_is_emailed(self, completed_payment, test_db, monkeypatch):
        monkeypatch.setattr(get_settings(), "EMAILS_ENABLED", True)

        with patch.object(EmailService, "send_notification") as mock_send:
            receipt = ReceiptService.generate_receipt(test_db, completed_payment)

        mock_send.assert_called_once()
        assert mock_send.call_args[0][:3] == ("ada@example.com", "Ada", "Receipt Generated")
        assert receipt.receipt_number in mock_send.call_args[0][3]

    def test_pending_payment_has_no_receipt(self, student, test_db):
        payment = Payment(
            user_id=student.id, amount=100, type=PaymentType.WALLET_FUNDING, method=PaymentMethod.CARD,
            status=PaymentStatus.PENDING, reference="REF-P", total_amount=100,
        )
        test_db.add(payment)
        test_db.commit()

        with pytest.raises(HTTPException) as exc:
            ReceiptService.generate_receipt(test_db, payment)

        assert exc.value.status_code == 400

    def test_list_and_get(self, client, student_headers, completed_payment, test_db):
        receipt = ReceiptService.generate_receipt(test_db, completed_payment)

        listing = client.get("/api/v1/receipts", headers=student_headers).json()
        single = client.get(f"/api/v1/receipts/{receipt.id}", headers=student_headers)

        assert listing["pagination"]["total"] == 1
        assert single.json()["receipt_number"] == receipt.receipt_number

    def test_other_users_receipt(self, client, completed_payment, test_db, make_user, headers_for):
        receipt = ReceiptService.generate_receipt(test_db, completed_payment)
        other = make_user()

        response = client.get(f"/api/v1/receipts/{receipt.id}", headers=headers_for(other))

        assert response.status_code == 404

    def test_public_verification(self, client, completed_payment, test_db):
        receipt = ReceiptService.generate_receipt(test_db, completed_payment)

        response = client.get(f"/api/v1/receipts/verify/{receipt.receipt_number}")

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["payment_reference"] == "REMIE-1700000000000"
        assert data["amount"] == 45000.0

    def test_public_verification_unknown(self, client):
        response = client.get("/api/v1/receipts/verify/RCP-20240101-DEADBEEF")

        assert response.status_code == 404


class TestNotifications:

    @pytest.fixture
    def notifications(self, student, test_db):
        items = [
            NotificationService.notify(test_db, student.id, "WALLET_FUNDED", f"Title {i}", f"Message {i}")
            for i in range(3)
        ]
        test_db.commit()
        return items

    def test_list_with_unread_count(self, client, student_headers, notifications):
        response = client.get("/api/v1/notifications", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["unread_count"] == 3
        assert data["pagination"]["total"] == 3

    def test_mark_read(self, client, student_headers, notifications):
        target = notifications[0]

        response = client.put(f"/api/v1/notifications/{target.id}/read", headers=student_headers)
        unread = client.get("/api/v1/notifications?unread_only=true", headers=student_headers).json()

        assert response.json()["is_read"] is True
        assert unread["unread_count"] == 2
        assert target.id not in [n["id"] for n in unread["notifications"]]

    def test_mark_read_other_user(self, client, notifications, make_user, headers_for):
        other = make_user()

        response = client.put(f"/api/v1/notifications/{notifications[0].id}/read", headers=headers_for(other))

        assert response.status_code == 404

    def test_mark_all_read(self, client, student_headers, notifications):
        response = client.put("/api/v1/notifications/read-all", headers=student_headers)
        after = client.get("/api/v1/notifications", headers=student_headers).json()

        assert response.json()["message"] == "3 notifications marked as read"
        assert after["unread_count"] == 0
