"""
Tests for the self-service profile endpoints.
"""
from app.core.auth.security import verify_password
from app.models import ApprovalStatus, Service, TestResult, User


def user_url(user):
    return f"/api/v1/user/{user.uuid}"


class TestGetProfile:
    def test_get_own_profile(self, client, test_user, auth_headers):
        response = client.get(user_url(test_user), headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Account retrieved successfully"
        data = body["data"]
        assert data["id"] == test_user.uuid
        assert data["username"] == "testuser"
        assert data["phoneNumber"] == "081234567890"
        assert "passwordHash" not in data

    def test_cannot_read_other_profile(self, client, parent_user, auth_headers):
        response = client.get(user_url(parent_user), headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"


class TestUpdateProfile:
    def test_partial_update(self, client, test_user, auth_headers, db_session):
        response = client.put(
            user_url(test_user),
            json={"name": "Renamed Person", "address": "Jl. Merdeka 10"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed Person"
        assert data["address"] == "Jl. Merdeka 10"
        # Untouched fields keep their values
        assert data["email"] == "testuser@example.com"

    def test_blank_fields_are_ignored(self, client, test_user, auth_headers):
        response = client.put(
            user_url(test_user),
            json={"name": "", "email": "", "address": "Somewhere"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Testuser Tester"
        assert data["email"] == "testuser@example.com"

    def test_username_conflict(self, client, test_user, parent_user, auth_headers):
        response = client.put(
            user_url(test_user),
            json={"username": parent_user.username},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Username already exists"

    def test_email_conflict(self, client, test_user, parent_user, auth_headers):
        response = client.put(
            user_url(test_user),
            json={"email": parent_user.email},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Email already exists"

    def test_keeping_own_username_is_not_a_conflict(
        self, client, test_user, auth_headers
    ):
        response = client.put(
            user_url(test_user),
            json={"username": "testuser"},
            headers=auth_headers,
        )

        assert response.status_code == 200

    def test_cannot_promote_to_staff(self, client, test_user, auth_headers):
        response = client.put(
            user_url(test_user), json={"role": "SUPERADMIN"}, headers=auth_headers
        )

        assert response.status_code == 422
        assert "role" in response.json()["errors"]

    def test_cannot_update_other_user(self, client, parent_user, auth_headers):
        response = client.put(
            user_url(parent_user), json={"name": "Hijacked"}, headers=auth_headers
        )

        assert response.status_code == 403


class TestDeleteAccount:
    def test_delete_own_account(
        self, client, test_user, auth_headers, db_session, make_test
    ):
        test = make_test()
        db_session.add(TestResult(user_id=test_user.id, test_id=test.id))
        db_session.commit()

        response = client.delete(user_url(test_user), headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Account deleted successfully"
        db_session.expire_all()
        assert db_session.query(User).filter(User.username == "testuser").first() is None
        assert db_session.query(TestResult).count() == 0

    def test_staff_with_authored_service_cannot_delete_self(
        self, client, admin_user, admin_headers, db_session
    ):
        db_session.add(
            Service(
                title="Family counselling",
                short_desc="Sessions for the whole family",
                content="x" * 60,
                status=ApprovalStatus.PENDING,
                created_by=admin_user.id,
            )
        )
        db_session.commit()

        response = client.delete(user_url(admin_user), headers=admin_headers)

        assert response.status_code == 409
        db_session.expire_all()
        assert db_session.get(User, admin_user.id) is not None

    def test_cannot_delete_other_account(self, client, parent_user, auth_headers):
        response = client.delete(user_url(parent_user), headers=auth_headers)

        assert response.status_code == 403


class TestPasswords:
    def test_check_password_valid(self, client, auth_headers):
        response = client.post(
            "/api/v1/user/check-password",
            json={"oldPassword": "password123"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"isValid": True}

    def test_check_password_invalid(self, client, auth_headers):
        response = client.post(
            "/api/v1/user/check-password",
            json={"oldPassword": "nottheone1"},
            headers=auth_headers,
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid password"
        assert "WWW-Authenticate" not in response.headers

    def test_change_password(self, client, test_user, auth_headers, db_session):
        response = client.post(
            "/api/v1/user/change-password",
            json={
                "oldPassword": "password123",
                "newPassword": "newsecret42",
                "confirmPassword": "newsecret42",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Password changed successfully"
        db_session.expire_all()
        user = db_session.query(User).filter(User.id == test_user.id).first()
        assert verify_password("newsecret42", user.password_hash)

    def test_change_password_mismatch(self, client, auth_headers):
        response = client.post(
            "/api/v1/user/change-password",
            json={
                "oldPassword": "password123",
                "newPassword": "newsecret42",
                "confirmPassword": "different42",
            },
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Passwords do not match"

    def test_change_password_wrong_current(self, client, auth_headers):
        response = client.post(
            "/api/v1/user/change-password",
            json={
                "oldPassword": "wrongpass1",
                "newPassword": "newsecret42",
                "confirmPassword": "newsecret42",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Current password is incorrect"

    def test_change_password_weak_new_password(self, client, auth_headers):
        response = client.post(
            "/api/v1/user/change-password",
            json={
                "oldPassword": "password123",
                "newPassword": "short",
                "confirmPassword": "short",
            },
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert "newPassword" in response.json()["errors"]
