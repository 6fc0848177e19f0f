from datetime import timedelta

from conftest import API, auth
from tutor_platform.database.database import User, UserStatus, OtpRecord, OtpPurpose
from tutor_platform.utilities import utcnow


def test_register_verify_login_flow(client, email_service):
    response = client.post(f"{API}/users/register", json={
        "email": "a@x.com", "password": "secret1", "phone": "0123456789", "role": "STUDENT",
    })
    assert response.status_code == 201
    response = client.post(f"{API}/users/verify-otp", json={"email": "a@x.com", "otp": email_service.codes["a@x.com"]})
    assert response.status_code == 201

    response = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "secret1"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["accessToken"]
    assert data["tokenType"] == "bearer"
    assert data["user"]["email"] == "a@x.com"
    assert data["user"]["role"] == "STUDENT"
    assert "passwordHash" not in data["user"]
    assert data["profileStatus"] == {"completed": False, "currentStep": None, "completedSteps": []}

def test_login_updates_last_login(client, db, register):
    register("a@x.com")
    client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "secret1"})
    db.expire_all()
    assert db.query(User).filter(User.email == "a@x.com").one().last_login_at is not None

def test_login_wrong_password(client, register):
    register("a@x.com")
    response = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid email or password"}

def test_login_unknown_email(client):
    response = client.post(f"{API}/auth/login", json={"email": "nobody@x.com", "password": "secret1"})
    assert response.status_code == 401

def test_login_inactive_account(client, db, register):
    register("a@x.com")
    user = db.query(User).filter(User.email == "a@x.com").one()
    user.status = UserStatus.INACTIVE
    db.commit()

    response = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert response.status_code == 403

def test_me_requires_token(client):
    response = client.get(f"{API}/auth/me")
    assert response.status_code == 401
    assert response.json()["success"] is False

def test_me_rejects_garbage_token(client):
    response = client.get(f"{API}/auth/me", headers=auth("not-a-token"))
    assert response.status_code == 401

def test_me_for_tutor_shows_onboarding_status(client, user_token):
    token = user_token("t@x.com", "TUTOR")

    response = client.get(f"{API}/auth/me", headers=auth(token))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "t@x.com"
    assert data["profileStatus"] == {"completed": False, "currentStep": 1, "completedSteps": []}

def test_change_password(client, user_token, login):
    token = user_token("a@x.com")

    response = client.post(f"{API}/auth/change-password", headers=auth(token),
                           json={"currentPassword": "secret1", "newPassword": "secret2"})
    assert response.status_code == 200

    assert client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "secret1"}).status_code == 401
    assert login("a@x.com", "secret2")

def test_change_password_checks_current(client, user_token):
    token = user_token("a@x.com")

    response = client.post(f"{API}/auth/change-password", headers=auth(token),
                           json={"currentPassword": "wrong-one", "newPassword": "secret2"})
    assert response.status_code == 401

    response = client.post(f"{API}/auth/change-password", headers=auth(token),
                           json={"currentPassword": "secret1", "newPassword": "secret1"})
    assert response.status_code == 400

def test_logout(client, user_token):
    token = user_token("a@x.com")
    response = client.post(f"{API}/auth/logout", headers=auth(token))
    assert response.status_code == 200

def test_forgot_and_reset_password(client, register, email_service, login):
    register("a@x.com")

    response = client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})
    assert response.status_code == 200
    code = email_service.reset_codes["a@x.com"]

    response = client.post(f"{API}/auth/reset-password", json={"email": "a@x.com", "otp": code, "newPassword": "brandnew"})
    assert response.status_code == 200
    assert login("a@x.com", "brandnew")

    # the code is spent
    response = client.post(f"{API}/auth/reset-password", json={"email": "a@x.com", "otp": code, "newPassword": "another"})
    assert response.status_code == 404

def test_forgot_password_unknown_email(client):
    response = client.post(f"{API}/auth/forgot-password", json={"email": "nobody@x.com"})
    assert response.status_code == 404

def test_forgot_password_cooldown(client, db, register):
    register("a@x.com")
    assert client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"}).status_code == 200
    assert client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"}).status_code == 429

    for record in db.query(OtpRecord).filter(OtpRecord.purpose == OtpPurpose.FORGOT_PASSWORD).all():
        record.created_at = utcnow() - timedelta(seconds=61)
    db.commit()
    assert client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"}).status_code == 200

def test_reset_password_wrong_code(client, register, email_service):
    register("a@x.com")
    client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})

    response = client.post(f"{API}/auth/reset-password", json={"email": "a@x.com", "otp": "0000", "newPassword": "brandnew"})
    assert response.status_code == 400

def test_reset_password_rejects_non_numeric_code(client, register):
    register("a@x.com")
    client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})

    response = client.post(f"{API}/auth/reset-password", json={"email": "a@x.com", "otp": "\u0661\u0662\u0663\u0664", "newPassword": "brandnew"})
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "otp"

def test_update_me(client, user_token, register):
    register("taken@x.com")
    token = user_token("a@x.com")

    response = client.put(f"{API}/users/me", headers=auth(token), json={"phone": "0111222333"})
    assert response.status_code == 200
    assert response.json()["data"]["phone"] == "0111222333"

    response = client.put(f"{API}/users/me", headers=auth(token), json={"email": "taken@x.com"})
    assert response.status_code == 409

    response = client.get(f"{API}/users/me", headers=auth(token))
    assert response.json()["data"]["role"] == "STUDENT"
