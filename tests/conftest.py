import pytest
from fastapi.testclient import TestClient
from cloudinary.exceptions import Error as CloudinaryError

from tutor_platform.config import Settings
from tutor_platform.exceptions import UpstreamError
from tutor_platform.main import create_app
from tutor_platform.services.email_service import EmailService, get_email_service
from tutor_platform.services.media_service import MediaService, get_media_service

API = "/api/v1"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"
PASSWORD = "secret1"


class FakeEmailService(EmailService):
    """Records the codes it would have sent instead of talking to SMTP."""

    def __init__(self, settings):
        super().__init__(settings)
        self.codes = {}
        self.reset_codes = {}
        self.welcomed = []
        self.fail = False

    def send_otp_email(self, to, otp):
        if self.fail:
            raise UpstreamError("SMTP unavailable")
        self.codes[to] = otp

    def send_password_reset_email(self, to, otp):
        if self.fail:
            raise UpstreamError("SMTP unavailable")
        self.reset_codes[to] = otp

    def send_welcome_email(self, to):
        self.welcomed.append(to)


class FakeMediaService(MediaService):
    """Cloudinary stand-in: hands out predictable URLs and remembers what was deleted."""

    def __init__(self, settings):
        super().__init__(settings)
        self.uploaded = []
        self.destroyed = []
        self.fail_upload_after = None
        self.fail_destroy = False

    def _upload(self, image, folder):
        if self.fail_upload_after is not None and len(self.uploaded) >= self.fail_upload_after:
            raise CloudinaryError("Upload rejected")
        url = f"https://res.cloudinary.com/demo/image/upload/v123/{folder}/img{len(self.uploaded) + 1}.jpg"
        self.uploaded.append(url)
        return {"secure_url": url}

    def _destroy(self, public_id):
        if self.fail_destroy:
            raise CloudinaryError("Destroy failed")
        self.destroyed.append(public_id)
        return {"result": "ok"}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key="test-secret",
        db_url=f"sqlite:///{tmp_path / 'test.db'}",
        logs_dir=str(tmp_path / "logs"),
        rate_limit_enabled=False,
        seed_catalog=True,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
    )

@pytest.fixture
def email_service(settings):
    return FakeEmailService(settings)

@pytest.fixture
def media_service(settings):
    return FakeMediaService(settings)

@pytest.fixture
def app(settings, email_service, media_service):
    app = create_app(settings)
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_media_service] = lambda: media_service
    return app

@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client

@pytest.fixture
def db(client):
    """A session on the app's database, for setting up and checking rows directly."""
    session = client.app.state.database.SessionLocal()
    yield session
    session.close()

def auth(token):
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def register(client, email_service):
    """Register and verify an account, returning the verify-otp data."""
    def _register(email, role="STUDENT", password=PASSWORD, phone="0123456789"):
        response = client.post(f"{API}/users/register", json={
            "email": email, "password": password, "phone": phone, "role": role,
        })
        assert response.status_code == 201, response.text
        response = client.post(f"{API}/users/verify-otp", json={"email": email, "otp": email_service.codes[email]})
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _register

@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        response = client.post(f"{API}/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["data"]["accessToken"]
    return _login

@pytest.fixture
def user_token(register, login):
    """Register, verify and log in. Returns the access token."""
    def _user_token(email, role="STUDENT"):
        register(email, role)
        return login(email)
    return _user_token

@pytest.fixture
def admin_token(login):
    return login(ADMIN_EMAIL, ADMIN_PASSWORD)

@pytest.fixture
def catalog(client):
    """Seeded subject and grade ids keyed by code."""
    subjects = client.get(f"{API}/subjects").json()["data"]
    grades = client.get(f"{API}/grades").json()["data"]
    return {
        "subjects": {s["code"]: s["id"] for s in subjects},
        "grades": {g["code"]: g["id"] for g in grades},
    }

@pytest.fixture
def onboard_tutor(client, user_token, admin_token, catalog):
    """
    Take a tutor through all four onboarding steps.

    Returns (token, tutor profile json). With approve=True the profile is also
    approved by the admin so it shows up publicly.
    """
    def _onboard(email, full_name="Tutor", hourly_rate=20, subjects=("MATH",), grades=("GRADE_10",),
                 teaching_area="Hanoi", approve=True):
        token = user_token(email, "TUTOR")
        response = client.post(f"{API}/tutors/profile", headers=auth(token), json={
            "fullName": full_name, "dateOfBirth": "1995-05-10", "gender": "male",
            "hourlyRate": hourly_rate, "teachingArea": teaching_area,
        })
        assert response.status_code == 201, response.text
        response = client.put(f"{API}/tutors/profile", headers=auth(token), json={"identityNumber": "123456789"})
        assert response.status_code == 200, response.text
        response = client.post(f"{API}/tutors/certificates", headers=auth(token), data={
            "schoolName": "National University", "major": "Mathematics", "educationStatus": "GRADUATED",
        })
        assert response.status_code == 201, response.text
        response = client.put(f"{API}/tutors/profile", headers=auth(token), json={
            "subjects": [catalog["subjects"][code] for code in subjects],
            "grades": [catalog["grades"][code] for code in grades],
        })
        assert response.status_code == 200, response.text
        tutor = response.json()["data"]
        if approve:
            response = client.put(f"{API}/admin/tutors/{tutor['id']}/status", headers=auth(admin_token),
                                  json={"status": "APPROVED"})
            assert response.status_code == 200, response.text
            tutor = response.json()["data"]
        return token, tutor
    return _onboard
