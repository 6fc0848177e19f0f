import pytest

from conftest import API, auth
from tutor_platform.database.database import Feedback, FeedbackAuthorRole, TutorProfile
from tutor_platform.repositories import feedback_repository


@pytest.fixture
def tutor(onboard_tutor):
    _, tutor = onboard_tutor("tutor@x.com", full_name="Rated Tutor")
    return tutor

@pytest.fixture
def student(client, user_token):
    """A logged-in student with a profile, so feedback carries an author name."""
    def _student(email, full_name="Student"):
        headers = auth(user_token(email, "STUDENT"))
        response = client.post(f"{API}/students", headers=headers, json={"fullName": full_name, "grade": "10"})
        assert response.status_code == 201, response.text
        return headers
    return _student

def leave_feedback(client, headers, tutor_id, rating, comment=None):
    body = {"rating": rating}
    if comment is not None:
        body["comment"] = comment
    return client.post(f"{API}/tutors/{tutor_id}/feedbacks", headers=headers, json=body)

def test_average_rating_rounds_to_one_decimal(client, tutor, student):
    for i, rating in enumerate([5, 4, 4]):
        response = leave_feedback(client, student(f"s{i}@x.com"), tutor["id"], rating)
        assert response.status_code == 201, response.text

    detail = client.get(f"{API}/tutors/{tutor['id']}/detail").json()["data"]
    assert detail["averageRating"] == 4.3
    assert detail["totalFeedback"] == 3

def test_average_rating_rounds_half_up(db, client, tutor, student):
    leave_feedback(client, student("a@x.com"), tutor["id"], 4)
    leave_feedback(client, student("b@x.com"), tutor["id"], 5)
    leave_feedback(client, student("c@x.com"), tutor["id"], 4)
    leave_feedback(client, student("d@x.com"), tutor["id"], 4)

    # 17 / 4 = 4.25
    assert feedback_repository.calculate_average_rating(db, tutor["id"]) == (4.3, 4)

def test_no_feedback_means_zero_rating(db, tutor):
    assert feedback_repository.calculate_average_rating(db, tutor["id"]) == (0.0, 0)

def test_feedback_response_includes_author_name(client, tutor, student):
    response = leave_feedback(client, student("s@x.com", full_name="Alice"), tutor["id"], 5, "<script>x</script>Great tutor")

    feedback = response.json()["data"]
    assert feedback["authorName"] == "Alice"
    assert feedback["authorRole"] == "STUDENT"
    assert feedback["comment"] == "xGreat tutor"
    assert feedback["status"] == "VISIBLE"

def test_one_feedback_per_author(client, db, tutor, student):
    headers = student("s@x.com")
    assert leave_feedback(client, headers, tutor["id"], 5).status_code == 201

    response = leave_feedback(client, headers, tutor["id"], 1)

    assert response.status_code == 409
    assert db.query(Feedback).count() == 1
    assert db.query(TutorProfile).filter(TutorProfile.id == tutor["id"]).one().average_rating == 5.0

def test_parents_can_leave_feedback(client, user_token, tutor):
    headers = auth(user_token("p@x.com", "PARENT"))
    client.post(f"{API}/parents", headers=headers, json={"fullName": "Parent Person"})

    response = leave_feedback(client, headers, tutor["id"], 4)

    assert response.status_code == 201
    assert response.json()["data"]["authorRole"] == FeedbackAuthorRole.PARENT.value
    assert response.json()["data"]["authorName"] == "Parent Person"

def test_tutors_cannot_leave_feedback(client, onboard_tutor, tutor):
    headers = auth(onboard_tutor("other@x.com", approve=False)[0])
    response = leave_feedback(client, headers, tutor["id"], 5)
    assert response.status_code == 403

def test_feedback_for_hidden_tutor(client, onboard_tutor, student):
    _, pending = onboard_tutor("pending@x.com", approve=False)
    response = leave_feedback(client, student("s@x.com"), pending["id"], 5)
    assert response.status_code == 404

def test_rating_out_of_range(client, tutor, student):
    response = leave_feedback(client, student("s@x.com"), tutor["id"], 6)
    assert response.status_code == 400

def test_moderation_recomputes_rating(client, tutor, student, admin_token):
    leave_feedback(client, student("a@x.com"), tutor["id"], 5)
    bad = leave_feedback(client, student("b@x.com"), tutor["id"], 1).json()["data"]

    response = client.put(f"{API}/admin/feedbacks/{bad['id']}/status", headers=auth(admin_token), json={"status": "hidden"})

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "HIDDEN"
    detail = client.get(f"{API}/tutors/{tutor['id']}/detail").json()["data"]
    assert detail["averageRating"] == 5.0
    assert detail["totalFeedback"] == 1

    listing = client.get(f"{API}/tutors/{tutor['id']}/feedbacks").json()
    assert listing["total"] == 1
    assert [f["rating"] for f in listing["data"]] == [5]

    response = client.get(f"{API}/admin/feedbacks", headers=auth(admin_token), params={"status": "HIDDEN"})
    assert [f["id"] for f in response.json()["data"]] == [bad["id"]]

def test_feedback_listing_is_paginated(client, tutor, student):
    for i in range(3):
        leave_feedback(client, student(f"s{i}@x.com"), tutor["id"], 3 + i)

    response = client.get(f"{API}/tutors/{tutor['id']}/feedbacks", params={"page": 2, "limit": 2})

    body = response.json()
    assert body["page"] == 2
    assert body["limit"] == 2
    assert body["total"] == 3
    assert body["totalPages"] == 2
    assert len(body["data"]) == 1

def test_deleting_tutor_removes_feedback(client, db, tutor, student, admin_token):
    leave_feedback(client, student("s@x.com"), tutor["id"], 5)

    response = client.delete(f"{API}/admin/users/{tutor['userId']}", headers=auth(admin_token))

    assert response.status_code == 200
    assert db.query(Feedback).count() == 0
    assert db.query(TutorProfile).count() == 0
