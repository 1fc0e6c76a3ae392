"""
Tests for the remie-admin command line tool.
"""
from datetime import datetime, timedelta

import pytest
from click.testing import CliRunner

from remie.cli.admin import cli
from remie.core.security import verify_password
from remie.models.loan import Loan, LoanStatus
from remie.models.payment import PaymentType
from remie.models.user import User, UserRole, UserStatus


@pytest.fixture
def runner():
    return CliRunner()


def get_user(db, email):
    db.expire_all()
    return db.query(User).filter(User.email == email).first()


class TestCreateFirstAdmin:

    def test_creates_admin(self, runner, test_db):
        result = runner.invoke(
            cli, ["create-first-admin"],
            input="Root@Example.com\nRoot\nAdmin\nsupersecret\nsupersecret\n",
        )

        assert result.exit_code == 0, result.output
        assert "Admin created." in result.output

        user = get_user(test_db, "root@example.com")
        assert user.role == UserRole.ADMIN
        assert user.status == UserStatus.ACTIVE
        assert user.email_verified is True
        assert verify_password("supersecret", user.password_hash)
        assert user.wallet is not None

    def test_upgrades_existing_user(self, runner, test_db, make_user):
        make_user(email="promote@example.com")

        result = runner.invoke(cli, ["create-first-admin"], input="promote@example.com\ny\n")

        assert result.exit_code == 0, result.output
        assert get_user(test_db, "promote@example.com").role == UserRole.ADMIN

    def test_upgrade_cancelled(self, runner, test_db, make_user):
        make_user(email="keep@example.com")

        result = runner.invoke(cli, ["create-first-admin"], input="keep@example.com\nn\n")

        assert "Cancelled." in result.output
        assert get_user(test_db, "keep@example.com").role == UserRole.STUDENT

    def test_short_password(self, runner, test_db):
        result = runner.invoke(
            cli, ["create-first-admin"],
            input="root@example.com\nRoot\nAdmin\nshort\nshort\n",
        )

        assert result.exit_code == 1
        assert get_user(test_db, "root@example.com") is None

    def test_invalid_email(self, runner, test_db):
        result = runner.invoke(cli, ["create-first-admin"], input="not-an-email\n")

        assert result.exit_code == 1


class TestCreateAdmin:

    def test_promotes_user(self, runner, test_db, make_user):
        make_user(email="pending@example.com", status=UserStatus.PENDING_APPROVAL)

        result = runner.invoke(cli, ["create-admin", "pending@example.com"])

        assert result.exit_code == 0, result.output
        user = get_user(test_db, "pending@example.com")
        assert user.role == UserRole.ADMIN
        assert user.status == UserStatus.ACTIVE

    def test_unknown_user(self, runner, test_db):
        result = runner.invoke(cli, ["create-admin", "ghost@example.com"])

        assert result.exit_code == 1


class TestCreateUserDirect:

    def test_with_options(self, runner, test_db):
        result = runner.invoke(cli, [
            "create-user-direct",
            "--email", "ops@example.com",
            "--password", "opspassword",
            "--first-name", "Ops",
            "--last-name", "Team",
        ])

        assert result.exit_code == 0, result.output
        user = get_user(test_db, "ops@example.com")
        assert user.role == UserRole.ADMIN
        assert user.full_name == "Ops Team"

    def test_blank_name(self, runner, test_db):
        result = runner.invoke(cli, [
            "create-user-direct",
            "--email", "ops@example.com",
            "--password", "opspassword",
            "--first-name", " ",
            "--last-name", "Team",
        ])

        assert result.exit_code == 1


class TestInspection:

    def test_check_admin(self, runner, admin, student):
        result = runner.invoke(cli, ["check-admin"])

        assert result.exit_code == 0
        assert "Admins (1):" in result.output
        assert "All users (2):" in result.output
        assert "ada@example.com - STUDENT - ACTIVE" in result.output

    def test_verify_admin(self, runner, admin):
        result = runner.invoke(cli, ["verify-admin", "admin@example.com"])

        assert result.exit_code == 0
        assert "ADMIN" in result.output
        assert "Password hash exists: Yes" in result.output


class TestMarkOverdueLoans:

    def test_marks_overdue(self, runner, student, test_db):
        test_db.add(Loan(
            user_id=student.id,
            loan_number="LOAN-1-ABCD",
            amount=10000,
            interest_rate=5.0,
            tenure=30,
            purpose="Fees",
            purpose_type=PaymentType.SCHOOL_FEE,
            total_repayable=10041.1,
            amount_paid=0.0,
            amount_outstanding=10041.1,
            due_date=datetime.utcnow() - timedelta(days=1),
            status=LoanStatus.DISBURSED,
        ))
        test_db.commit()

        result = runner.invoke(cli, ["mark-overdue-loans"])

        assert result.exit_code == 0, result.output
        assert "1 loan(s) marked as defaulted." in result.output
        test_db.expire_all()
        assert test_db.query(Loan).one().status == LoanStatus.DEFAULTED
