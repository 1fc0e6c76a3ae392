"""
Tests for student loans: pricing, credit score, application, repayment
and overdue handling.
"""
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from remie.core.config import get_settings
from remie.models.loan import Loan, LoanStatus
from remie.models.notification import Notification
from remie.models.payment import Payment, PaymentType
from remie.models.receipt import Receipt
from remie.services.email_service import EmailService
from remie.services.loan_service import LoanService

APPLY_PAYLOAD = {"amount": 10000, "purpose": "Textbooks for second semester", "tenure": 30}


def add_loan(db, user, loan_status, amount=10000.0, due_in_days=30):
    loan = Loan(
        user_id=user.id,
        loan_number=LoanService.generate_loan_number(),
        amount=amount,
        interest_rate=5.0,
        tenure=30,
        purpose="Fees",
        purpose_type=PaymentType.SCHOOL_FEE,
        total_repayable=amount,
        amount_paid=0.0,
        amount_outstanding=amount,
        due_date=datetime.utcnow() + timedelta(days=due_in_days),
        status=loan_status,
    )
    db.add(loan)
    db.commit()
    return loan


@pytest.fixture
def manual_approval(monkeypatch):
    monkeypatch.setattr(get_settings(), "LOAN_AUTO_APPROVE", False)


class TestCalculate:

    def test_simple_interest(self):
        calc = LoanService.calculate(10000, 30, 5.0)

        assert calc["interest"] == 41.1
        assert calc["total_repayable"] == 10041.1
        assert calc["daily_repayment"] == 334.7

    def test_calculate_endpoint_uses_default_rate(self, client):
        response = client.post("/api/v1/loans/calculate", json={"amount": 36500, "tenure": 10})

        assert response.status_code == 200
        data = response.json()
        assert data["interest_rate"] == 5.0
        assert data["interest"] == 50.0
        assert data["total_repayable"] == 36550.0


class TestCreditScore:

    def test_no_history(self, student, test_db):
        assert LoanService.credit_score(test_db, student.id) == 500

    def test_history_adjusts_score(self, student, test_db):
        add_loan(test_db, student, LoanStatus.COMPLETED)
        add_loan(test_db, student, LoanStatus.COMPLETED)
        add_loan(test_db, student, LoanStatus.ACTIVE)

        assert LoanService.credit_score(test_db, student.id) == 575

    def test_score_clamped(self, student, test_db):
        for _ in range(4):
            add_loan(test_db, student, LoanStatus.DEFAULTED)

        assert LoanService.credit_score(test_db, student.id) == 300

    def test_credit_score_endpoint(self, client, student, student_headers, test_db):
        add_loan(test_db, student, LoanStatus.DEFAULTED)
        add_loan(test_db, student, LoanStatus.DEFAULTED)

        response = client.get("/api/v1/loans/credit-score", headers=student_headers)

        assert response.json() == {"credit_score": 300, "eligible": False, "max_loan_amount": 50000.0}


class TestApply:

    def test_auto_approved_and_disbursed(self, client, student, student_headers, test_db):
        response = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "DISBURSED"
        assert data["credit_score"] == 500
        assert data["total_repayable"] == 10041.1
        assert data["amount_outstanding"] == 10041.1

        test_db.refresh(student.wallet)
        assert student.wallet.balance == 30000.0

        loan = test_db.query(Loan).one()
        assert loan.approved_by == "SYSTEM"
        disbursement = test_db.query(Payment).filter(Payment.reference == f"{loan.loan_number}-DISB").one()
        assert disbursement.type == PaymentType.LOAN_DISBURSEMENT
        assert test_db.query(Receipt).filter(Receipt.payment_id == disbursement.id).count() == 1
        assert test_db.query(Notification).filter(Notification.type == "LOAN_APPROVED").count() == 1

    def test_pending_without_auto_approval(self, client, student, student_headers, test_db, manual_approval):
        response = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD)

        assert response.json()["status"] == "PENDING"
        test_db.refresh(student.wallet)
        assert student.wallet.balance == 20000.0

    @pytest.mark.parametrize("payload", [
        {**APPLY_PAYLOAD, "amount": 4999},
        {**APPLY_PAYLOAD, "amount": 50001},
        {**APPLY_PAYLOAD, "tenure": 6},
        {**APPLY_PAYLOAD, "tenure": 91},
    ])
    def test_out_of_range(self, client, student_headers, payload):
        response = client.post("/api/v1/loans/apply", headers=student_headers, json=payload)

        assert response.status_code == 400

    def test_one_open_loan(self, client, student_headers):
        client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD)

        response = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD)

        assert response.status_code == 400
        assert response.json()["detail"] == "You already have an active loan"

    def test_low_credit_score(self, client, student, student_headers, test_db):
        add_loan(test_db, student, LoanStatus.DEFAULTED)
        add_loan(test_db, student, LoanStatus.DEFAULTED)

        response = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD)

        assert response.status_code == 400
        assert response.json()["detail"] == "Credit score too low for loan approval"


class TestAdminDecision:

    def test_admin_approves(self, client, student, student_headers, admin, admin_headers, test_db, manual_approval):
        loan_id = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD).json()["id"]

        response = client.post(f"/api/v1/admin/loans/{loan_id}/approve", headers=admin_headers)
        again = client.post(f"/api/v1/admin/loans/{loan_id}/approve", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "DISBURSED"
        assert again.status_code == 400
        test_db.refresh(student.wallet)
        assert student.wallet.balance == 30000.0
        assert test_db.query(Loan).one().approved_by == admin.id

    def test_admin_rejects(self, client, student_headers, admin_headers, manual_approval):
        loan_id = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD).json()["id"]

        response = client.post(f"/api/v1/admin/loans/{loan_id}/reject", headers=admin_headers)

        assert response.json()["status"] == "REJECTED"

    def test_rejection_is_emailed(self, client, student_headers, admin_headers, manual_approval, monkeypatch):
        loan_id = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD).json()["id"]
        monkeypatch.setattr(get_settings(), "EMAILS_ENABLED", True)

        with patch.object(EmailService, "send_notification") as mock_send:
            client.post(f"/api/v1/admin/loans/{loan_id}/reject", headers=admin_headers)

        mock_send.assert_called_once()
        assert mock_send.call_args[0][:3] == ("ada@example.com", "Ada", "Loan Rejected")

    def test_student_cannot_approve(self, client, student_headers, manual_approval):
        loan_id = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD).json()["id"]

        response = client.post(f"/api/v1/admin/loans/{loan_id}/approve", headers=student_headers)

        assert response.status_code == 403


class TestRepay:

    @pytest.fixture
    def loan_id(self, client, student_headers):
        return client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD).json()["id"]

    def test_partial_then_full_repayment(self, client, student, student_headers, loan_id, test_db):
        partial = client.post(f"/api/v1/loans/{loan_id}/repay", headers=student_headers, json={"amount": 5000})

        assert partial.status_code == 200
        assert partial.json()["loan"]["status"] == "ACTIVE"
        assert partial.json()["loan"]["amount_outstanding"] == 5041.1
        assert partial.json()["new_balance"] == 25000.0

        full = client.post(f"/api/v1/loans/{loan_id}/repay", headers=student_headers, json={"amount": 5041.1})

        assert full.json()["loan"]["status"] == "COMPLETED"
        assert full.json()["loan"]["amount_outstanding"] == 0.0

        detail = client.get(f"/api/v1/loans/{loan_id}", headers=student_headers).json()
        assert len(detail["repayments"]) == 2
        assert LoanService.credit_score(test_db, student.id) == 550

        repayments = test_db.query(Payment).filter(Payment.type == PaymentType.LOAN_REPAYMENT).all()
        assert len(repayments) == 2
        receipts = test_db.query(Receipt).filter(Receipt.payment_id.in_([p.id for p in repayments])).count()
        assert receipts == 2

    def test_overpayment_rejected(self, client, student_headers, loan_id):
        response = client.post(f"/api/v1/loans/{loan_id}/repay", headers=student_headers, json={"amount": 20000})

        assert response.status_code == 400
        assert response.json()["detail"] == "Repayment amount exceeds outstanding balance"

    def test_insufficient_wallet_balance(self, client, student, student_headers, loan_id, test_db):
        student.wallet.available_balance = 100.0
        test_db.commit()

        response = client.post(f"/api/v1/loans/{loan_id}/repay", headers=student_headers, json={"amount": 5000})

        assert response.status_code == 400
        assert response.json()["detail"] == "Insufficient wallet balance"

    def test_other_users_loan(self, client, loan_id, make_user, headers_for):
        other = make_user(balance=50000)

        response = client.post(f"/api/v1/loans/{loan_id}/repay", headers=headers_for(other), json={"amount": 100})

        assert response.status_code == 404

    def test_pending_loan_not_repayable(self, client, student_headers, manual_approval):
        loan_id = client.post("/api/v1/loans/apply", headers=student_headers, json=APPLY_PAYLOAD).json()["id"]

        response = client.post(f"/api/v1/loans/{loan_id}/repay", headers=student_headers, json={"amount": 100})

        assert response.status_code == 400
        assert response.json()["detail"] == "Loan is not active"


class TestOverdue:

    def test_mark_overdue_loans(self, student, make_user, test_db):
        overdue = add_loan(test_db, student, LoanStatus.DISBURSED, due_in_days=-1)
        other = make_user()
        current = add_loan(test_db, other, LoanStatus.ACTIVE, due_in_days=5)

        assert LoanService.mark_overdue_loans(test_db) == 1

        test_db.refresh(overdue)
        test_db.refresh(current)
        assert overdue.status == LoanStatus.DEFAULTED
        assert current.status == LoanStatus.ACTIVE
        notification = test_db.query(Notification).filter(Notification.type == "LOAN_DEFAULTED").one()
        assert notification.user_id == student.id

    def test_defaulted_borrower_is_emailed(self, student, test_db, monkeypatch):
        monkeypatch.setattr(get_settings(), "EMAILS_ENABLED", True)
        loan = add_loan(test_db, student, LoanStatus.ACTIVE, due_in_days=-2)

        with patch.object(EmailService, "send_notification") as mock_send:
            LoanService.mark_overdue_loans(test_db)

        mock_send.assert_called_once()
        email, first_name, title, message = mock_send.call_args[0]
        assert (email, first_name, title) == ("ada@example.com", "Ada", "Loan Overdue")
        assert loan.loan_number in message

    def test_no_email_when_disabled(self, student, test_db):
        add_loan(test_db, student, LoanStatus.ACTIVE, due_in_days=-2)

        with patch.object(EmailService, "send_notification") as mock_send:
            LoanService.mark_overdue_loans(test_db)

        mock_send.assert_not_called()

    def test_list_loans(self, client, student, student_headers, test_db):
        add_loan(test_db, student, LoanStatus.COMPLETED)

        response = client.get("/api/v1/loans", headers=student_headers)

        assert response.status_code == 200
        assert [loan["status"] for loan in response.json()] == ["COMPLETED"]
