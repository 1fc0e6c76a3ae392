"""
Tests for the admin back office.
"""
from remie.models.notification import Notification
from remie.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from remie.models.user import UserStatus


class TestAccess:

    def test_requires_admin_role(self, client, student_headers):
        response = client.get("/api/v1/admin/stats", headers=student_headers)

        assert response.status_code == 403

    def test_requires_authentication(self, client):
        response = client.get("/api/v1/admin/stats")

        assert response.status_code == 401


class TestDashboard:

    def test_stats(self, client, student, admin_headers, make_user, test_db):
        make_user(status=UserStatus.PENDING_APPROVAL)
        test_db.add(Payment(
            user_id=student.id, amount=1500, type=PaymentType.WALLET_FUNDING, method=PaymentMethod.CARD,
            status=PaymentStatus.COMPLETED, reference="REF-1", total_amount=1500,
        ))
        test_db.add(Payment(
            user_id=student.id, amount=700, type=PaymentType.WALLET_FUNDING, method=PaymentMethod.CARD,
            status=PaymentStatus.FAILED, reference="REF-2", total_amount=700,
        ))
        test_db.commit()

        response = client.get("/api/v1/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 3
        assert data["active_users"] == 2
        assert data["pending_approval"] == 1
        assert data["total_wallet_balance"] == 20000.0
        assert data["total_transactions"] == 2
        assert data["completed_transactions"] == 1
        assert data["total_volume"] == 1500.0

    def test_activities(self, client, student, admin_headers, test_db):
        test_db.add(Payment(
            user_id=student.id, amount=1500, type=PaymentType.WALLET_FUNDING, method=PaymentMethod.CARD,
            status=PaymentStatus.COMPLETED, reference="REF-1", total_amount=1500,
        ))
        test_db.commit()

        response = client.get("/api/v1/admin/activities", headers=admin_headers)

        assert response.status_code == 200
        activity = response.json()[0]
        assert activity["reference"] == "REF-1"
        assert activity["user_email"] == "ada@example.com"
        assert activity["user_name"] == "Ada Obi"


class TestUsers:

    def test_list_users_with_filters(self, client, student, admin_headers, make_user):
        make_user(email="pending@example.com", status=UserStatus.PENDING_APPROVAL)

        everyone = client.get("/api/v1/admin/users", headers=admin_headers).json()
        pending = client.get("/api/v1/admin/users?status=PENDING_APPROVAL", headers=admin_headers).json()
        search = client.get("/api/v1/admin/users?search=ADA", headers=admin_headers).json()

        assert everyone["pagination"]["total"] == 3
        assert [u["email"] for u in pending["users"]] == ["pending@example.com"]
        assert [u["email"] for u in search["users"]] == ["ada@example.com"]

    def test_pending_approval_queue(self, client, admin_headers, make_user):
        make_user(email="first@example.com", status=UserStatus.PENDING_APPROVAL)
        make_user(email="second@example.com", status=UserStatus.PENDING_APPROVAL)

        response = client.get("/api/v1/admin/users/pending-approval", headers=admin_headers)

        assert [u["email"] for u in response.json()] == ["first@example.com", "second@example.com"]

    def test_user_details(self, client, student, admin_headers):
        response = client.get(f"/api/v1/admin/users/{student.id}", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "ada@example.com"
        assert data["wallet"]["balance"] == 20000.0
        assert data["payment_count"] == 0
        assert data["recent_loans"] == []

    def test_user_details_not_found(self, client, admin_headers):
        response = client.get("/api/v1/admin/users/missing", headers=admin_headers)

        assert response.status_code == 404


class TestApproval:

    def test_approve_user(self, client, admin, admin_headers, make_user, test_db):
        user = make_user(status=UserStatus.PENDING_APPROVAL)

        response = client.post(f"/api/v1/admin/users/{user.id}/approve", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"
        test_db.refresh(user)
        assert user.approved_by == admin.id
        assert test_db.query(Notification).filter(
            Notification.user_id == user.id, Notification.type == "ACCOUNT_APPROVED"
        ).count() == 1

    def test_approve_non_pending(self, client, student, admin_headers):
        response = client.post(f"/api/v1/admin/users/{student.id}/approve", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "User is not pending approval"

    def test_reject_user(self, client, admin_headers, make_user):
        user = make_user(status=UserStatus.PENDING_APPROVAL)

        response = client.post(f"/api/v1/admin/users/{user.id}/reject", headers=admin_headers)

        assert response.json()["status"] == "INACTIVE"

    def test_approved_user_can_fund(self, client, admin_headers, make_user, headers_for):
        user = make_user(status=UserStatus.PENDING_APPROVAL)
        client.post(f"/api/v1/admin/users/{user.id}/approve", headers=admin_headers)

        response = client.post("/api/v1/wallet/fund", headers=headers_for(user), json={"amount": 50})

        # Reaches the funding limit checks instead of the approval gate
        assert response.status_code == 400


class TestStatusChanges:

    def test_suspend_blocks_access(self, client, student, student_headers, admin_headers):
        response = client.post(f"/api/v1/admin/users/{student.id}/suspend", headers=admin_headers)

        assert response.json()["status"] == "SUSPENDED"
        blocked = client.get("/api/v1/wallet/balance", headers=student_headers)
        assert blocked.status_code == 403
        assert blocked.json()["detail"] == "Account has been suspended"

    def test_activate_and_deactivate(self, client, student, admin_headers):
        deactivated = client.post(f"/api/v1/admin/users/{student.id}/deactivate", headers=admin_headers)
        activated = client.post(f"/api/v1/admin/users/{student.id}/activate", headers=admin_headers)

        assert deactivated.json()["status"] == "INACTIVE"
        assert activated.json()["status"] == "ACTIVE"

    def test_admin_cannot_change_own_status(self, client, admin, admin_headers):
        response = client.post(f"/api/v1/admin/users/{admin.id}/suspend", headers=admin_headers)

        assert response.status_code == 400


class TestLimitsAndNickname:

    def test_update_limits(self, client, student, admin_headers):
        response = client.put(
            f"/api/v1/admin/users/{student.id}/limits",
            headers=admin_headers,
            json={"daily_limit": 100000},
        )

        assert response.status_code == 200
        assert response.json()["daily_limit"] == 100000.0
        assert response.json()["monthly_limit"] == 500000.0

    def test_negative_limit(self, client, student, admin_headers):
        response = client.put(
            f"/api/v1/admin/users/{student.id}/limits",
            headers=admin_headers,
            json={"monthly_limit": -1},
        )

        assert response.status_code == 400

    def test_set_and_clear_nickname(self, client, student, admin_headers):
        url = f"/api/v1/admin/users/{student.id}/nickname"

        assert client.put(url, headers=admin_headers, json={"nickname": "adaobi"}).json()["nickname"] == "adaobi"
        assert client.put(url, headers=admin_headers, json={"nickname": ""}).json()["nickname"] is None

    def test_nickname_taken(self, client, student, admin_headers, make_user):
        other = make_user()
        client.put(f"/api/v1/admin/users/{other.id}/nickname", headers=admin_headers, json={"nickname": "ace"})

        response = client.put(
            f"/api/v1/admin/users/{student.id}/nickname", headers=admin_headers, json={"nickname": "ace"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Nickname is already taken"
