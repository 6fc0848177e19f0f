import pytest
from sqlalchemy.exc import OperationalError

from conftest import API, auth
from tutor_platform.database.database import Certificate, OrphanedImage, TutorProfile, User
from tutor_platform.services import tutor_service
from tutor_platform.services.media_service import extract_public_id

BASIC_INFO = {"fullName": "Jane Tutor", "dateOfBirth": "1995-05-10", "gender": "FEMALE", "hourlyRate": 25}
FORM = {"schoolName": "National University", "major": "Physics", "educationStatus": "STUDYING"}


def jpeg(name="photo.jpg", size=16):
    return ("images", (name, b"\xff\xd8\xff" + b"0" * size, "image/jpeg"))

@pytest.fixture
def tutor_headers(client, user_token):
    def _tutor_headers(email="t@x.com"):
        headers = auth(user_token(email, "TUTOR"))
        response = client.post(f"{API}/tutors/profile", headers=headers, json=BASIC_INFO)
        assert response.status_code == 201, response.text
        return headers
    return _tutor_headers

def test_extract_public_id():
    url = "https://res.cloudinary.com/demo/image/upload/v1712345678/tutor-certificates/abc_123.png"
    assert extract_public_id(url) == "tutor-certificates/abc_123"
    assert extract_public_id("https://example.com/no-version.png") is None
    assert extract_public_id("") is None

def test_add_certificate_with_images(client, db, tutor_headers, media_service):
    headers = tutor_headers()

    response = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM,
                           files=[jpeg("a.jpg"), jpeg("b.jpg")])

    assert response.status_code == 201, response.text
    certificate = response.json()["data"]
    assert certificate["schoolName"] == "National University"
    assert certificate["educationStatus"] == "STUDYING"
    assert certificate["images"] == media_service.uploaded
    assert len(certificate["images"]) == 2

    tutor = db.query(TutorProfile).one()
    assert tutor.completed_steps == [1, 3]
    assert tutor.current_step == 4

def test_failed_upload_persists_nothing_and_cleans_up(client, db, tutor_headers, media_service):
    headers = tutor_headers()
    media_service.fail_upload_after = 1

    response = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM,
                           files=[jpeg("a.jpg"), jpeg("b.jpg")])

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert db.query(Certificate).count() == 0
    assert db.query(TutorProfile).one().completed_steps == [1]
    assert media_service.destroyed == ["tutor-certificates/img1"]
    assert db.query(OrphanedImage).count() == 0

def test_failed_cleanup_is_recorded_and_reconciled(client, db, tutor_headers, media_service, admin_token):
    headers = tutor_headers()
    media_service.fail_upload_after = 1
    media_service.fail_destroy = True

    response = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM,
                           files=[jpeg("a.jpg"), jpeg("b.jpg")])

    assert response.status_code == 500
    orphans = db.query(OrphanedImage).all()
    assert [o.public_id for o in orphans] == ["tutor-certificates/img1"]

    media_service.fail_destroy = False
    response = client.post(f"{API}/admin/media/reconcile", headers=auth(admin_token))

    assert response.status_code == 200
    assert response.json()["data"] == {"deleted": 1, "remaining": 0}
    db.expire_all()
    assert db.query(OrphanedImage).count() == 0

def test_database_failure_after_upload_removes_images(media_service):
    class FailingSession:
        def __init__(self):
            self.commits = 0
            self.rolled_back = False

        def commit(self):
            self.commits += 1
            if self.commits == 1:
                raise OperationalError("INSERT", {}, Exception("disk full"))

        def rollback(self):
            self.rolled_back = True

    session = FailingSession()
    urls = [
        "https://res.cloudinary.com/demo/image/upload/v1/tutor-certificates/one.jpg",
        "https://res.cloudinary.com/demo/image/upload/v1/tutor-certificates/two.jpg",
    ]

    with pytest.raises(OperationalError):
        tutor_service._commit_or_compensate(session, media_service, urls)

    assert session.rolled_back is True
    assert media_service.destroyed == ["tutor-certificates/one", "tutor-certificates/two"]

def test_rejects_non_image_files(client, tutor_headers, media_service):
    headers = tutor_headers()

    response = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM,
                           files=[("images", ("notes.txt", b"hello", "text/plain"))])

    assert response.status_code == 400
    assert media_service.uploaded == []

def test_rejects_too_many_files(client, tutor_headers):
    headers = tutor_headers()
    files = [jpeg(f"{i}.jpg") for i in range(6)]
    response = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM, files=files)
    assert response.status_code == 400

def test_rejects_oversized_files(client, settings, tutor_headers):
    headers = tutor_headers()
    settings.max_upload_size_mb = 0
    response = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM, files=[jpeg()])
    assert response.status_code == 413

def test_rejects_bad_education_status(client, tutor_headers):
    headers = tutor_headers()
    response = client.post(f"{API}/tutors/certificates", headers=headers, data={**FORM, "educationStatus": "DROPPED"})
    assert response.status_code == 400

def test_certificate_requires_tutor_profile(client, user_token):
    headers = auth(user_token("t@x.com", "TUTOR"))
    response = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM)
    assert response.status_code == 404

def test_only_owner_can_modify_certificate(client, tutor_headers):
    owner = tutor_headers("owner@x.com")
    other = tutor_headers("other@x.com")
    certificate = client.post(f"{API}/tutors/certificates", headers=owner, data=FORM, files=[jpeg()]).json()["data"]
    url = f"{API}/tutors/certificates/{certificate['id']}"

    assert client.put(url, headers=other, data={"major": "Chemistry"}).status_code == 403
    assert client.delete(url, headers=other).status_code == 403
    response = client.request("DELETE", f"{url}/images", headers=other, json={"imageUrls": certificate["images"]})
    assert response.status_code == 403

    assert client.delete(f"{API}/tutors/certificates/unknown-id", headers=owner).status_code == 404

def test_update_certificate_appends_images(client, tutor_headers, media_service):
    headers = tutor_headers()
    certificate = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM, files=[jpeg()]).json()["data"]

    response = client.put(f"{API}/tutors/certificates/{certificate['id']}", headers=headers,
                          data={"major": "Applied Physics", "educationStatus": "GRADUATED"}, files=[jpeg("new.jpg")])

    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["major"] == "Applied Physics"
    assert updated["educationStatus"] == "GRADUATED"
    assert updated["schoolName"] == "National University"
    assert updated["images"] == media_service.uploaded

def test_remove_certificate_images(client, tutor_headers, media_service):
    headers = tutor_headers()
    certificate = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM,
                              files=[jpeg("a.jpg"), jpeg("b.jpg")]).json()["data"]
    first, second = certificate["images"]

    response = client.request("DELETE", f"{API}/tutors/certificates/{certificate['id']}/images", headers=headers,
                              json={"imageUrls": [first, "https://res.cloudinary.com/demo/image/upload/v1/elsewhere/x.jpg"]})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["images"] == [second]
    assert data["failedImages"] == []
    assert media_service.destroyed == ["tutor-certificates/img1"]

def test_remove_images_requires_urls(client, tutor_headers):
    headers = tutor_headers()
    certificate = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM).json()["data"]
    response = client.request("DELETE", f"{API}/tutors/certificates/{certificate['id']}/images", headers=headers,
                              json={"imageUrls": []})
    assert response.status_code == 400

def test_delete_certificate_reports_failed_image_deletions(client, db, tutor_headers, media_service):
    headers = tutor_headers()
    certificate = client.post(f"{API}/tutors/certificates", headers=headers, data=FORM,
                              files=[jpeg("a.jpg"), jpeg("b.jpg")]).json()["data"]
    media_service.fail_destroy = True

    response = client.delete(f"{API}/tutors/certificates/{certificate['id']}", headers=headers)

    assert response.status_code == 200
    assert response.json()["data"]["failedImages"] == ["tutor-certificates/img1", "tutor-certificates/img2"]
    assert db.query(Certificate).count() == 0
    assert db.query(OrphanedImage).count() == 2

    response = client.get(f"{API}/tutors/certificates", headers=headers)
    assert response.json()["data"] == []

def test_list_my_certificates(client, tutor_headers):
    headers = tutor_headers()
    client.post(f"{API}/tutors/certificates", headers=headers, data=FORM)
    client.post(f"{API}/tutors/certificates", headers=headers, data={**FORM, "major": "Maths"})

    response = client.get(f"{API}/tutors/certificates", headers=headers)

    assert [c["major"] for c in response.json()["data"]] == ["Physics", "Maths"]

def test_generic_upload_endpoints(client, user_token, media_service):
    headers = auth(user_token("s@x.com"))

    response = client.post(f"{API}/upload/image", headers=headers, files={"image": ("avatar.png", b"\x89PNG", "image/png")})
    assert response.status_code == 201
    url = response.json()["data"]["url"]
    assert url == media_service.uploaded[0]

    response = client.post(f"{API}/upload/images", headers=headers, files=[jpeg("1.jpg"), jpeg("2.jpg")])
    assert response.status_code == 201
    assert len(response.json()["data"]["urls"]) == 2

    response = client.request("DELETE", f"{API}/upload/image", headers=headers, json={"imageUrl": url})
    assert response.status_code == 200
    assert media_service.destroyed == [extract_public_id(url)]

def test_upload_requires_authentication(client):
    response = client.post(f"{API}/upload/image", files={"image": ("avatar.png", b"\x89PNG", "image/png")})
    assert response.status_code == 401

def test_generic_uploads_go_to_the_callers_folder(client, db, user_token, media_service):
    headers = auth(user_token("s@x.com"))
    user = db.query(User).filter(User.email == "s@x.com").one()

    url = client.post(f"{API}/upload/image", headers=headers,
                      files={"image": ("avatar.png", b"\x89PNG", "image/png")}).json()["data"]["url"]

    assert extract_public_id(url).startswith(f"user-uploads/{user.id}/")

def test_cannot_delete_images_uploaded_by_others(client, user_token, tutor_headers, media_service):
    owner = tutor_headers()
    certificate = client.post(f"{API}/tutors/certificates", headers=owner, data=FORM, files=[jpeg()]).json()["data"]
    avatar = client.post(f"{API}/upload/image", headers=owner,
                         files={"image": ("avatar.png", b"\x89PNG", "image/png")}).json()["data"]["url"]

    other = auth(user_token("s@x.com"))
    response = client.request("DELETE", f"{API}/upload/image", headers=other, json={"imageUrl": certificate["images"][0]})
    assert response.status_code == 403
    response = client.request("DELETE", f"{API}/upload/images", headers=other, json={"imageUrls": [avatar]})
    assert response.status_code == 403

    assert media_service.destroyed == []
    response = client.get(f"{API}/tutors/certificates", headers=owner)
    assert response.json()["data"][0]["images"] == certificate["images"]
