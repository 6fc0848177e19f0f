import pytest

from conftest import API, auth


@pytest.fixture
def tutors(client, onboard_tutor, user_token):
    """Two approved tutors, one submitted but unreviewed, one still in draft."""
    _, alice = onboard_tutor("alice@x.com", full_name="Alice Nguyen", hourly_rate=30,
                             subjects=("MATH",), grades=("GRADE_10",), teaching_area="Hanoi")
    _, bob = onboard_tutor("bob@x.com", full_name="Bob Tran", hourly_rate=15,
                           subjects=("PHYSICS",), grades=("GRADE_12",), teaching_area="Da Nang")
    _, carol = onboard_tutor("carol@x.com", full_name="Carol Le", hourly_rate=10,
                             subjects=("MATH",), grades=("GRADE_10",), approve=False)

    headers = auth(user_token("dave@x.com", "TUTOR"))
    dave = client.post(f"{API}/tutors/profile", headers=headers, json={
        "fullName": "Dave Draft", "dateOfBirth": "1990-01-01", "gender": "MALE", "hourlyRate": 5,
    }).json()["data"]
    return {"alice": alice, "bob": bob, "carol": carol, "dave": dave}

def names(response):
    return [t["fullName"] for t in response.json()["data"]]

def search(client, **params):
    response = client.get(f"{API}/tutors/search", params=params)
    assert response.status_code == 200, response.text
    return response

def test_search_only_returns_approved_tutors(client, tutors):
    response = search(client)
    assert sorted(names(response)) == ["Alice Nguyen", "Bob Tran"]
    assert response.json()["total"] == 2

    response = client.get(f"{API}/tutors")
    assert sorted(names(response)) == ["Alice Nguyen", "Bob Tran"]

    for tutor in ("carol", "dave"):
        assert client.get(f"{API}/tutors/{tutors[tutor]['id']}/detail").status_code == 404

def test_rejected_tutors_disappear(client, tutors, admin_token):
    response = client.put(f"{API}/admin/tutors/{tutors['alice']['id']}/status", headers=auth(admin_token),
                          json={"status": "REJECTED", "reason": "Blurry documents"})
    assert response.status_code == 200
    assert response.json()["data"]["profileStatus"] == "REJECTED"

    assert names(search(client)) == ["Bob Tran"]

def test_search_by_name(client, tutors):
    assert names(search(client, name="ALICE")) == ["Alice Nguyen"]
    assert names(search(client, name="le")) == []

def test_search_by_subject_and_grade(client, tutors, catalog):
    math, physics = catalog["subjects"]["MATH"], catalog["subjects"]["PHYSICS"]

    assert names(search(client, subjects=math)) == ["Alice Nguyen"]
    assert sorted(names(search(client, subjects=f"{math},{physics}"))) == ["Alice Nguyen", "Bob Tran"]
    assert names(search(client, grades=catalog["grades"]["GRADE_12"])) == ["Bob Tran"]
    assert names(search(client, subjects=math, grades=catalog["grades"]["GRADE_12"])) == []

def test_search_by_teaching_area(client, tutors):
    assert names(search(client, teachingArea="nang")) == ["Bob Tran"]

def test_search_sorting(client, tutors):
    assert names(search(client, sortBy="hourlyRate", sortOrder="asc")) == ["Bob Tran", "Alice Nguyen"]
    assert names(search(client, sortBy="hourlyRate", sortOrder="desc")) == ["Alice Nguyen", "Bob Tran"]
    assert names(search(client, sortBy="fullName", sortOrder="asc")) == ["Alice Nguyen", "Bob Tran"]

def test_search_rejects_unknown_sort(client):
    response = client.get(f"{API}/tutors/search", params={"sortBy": "password"})
    assert response.status_code == 400

def test_search_pagination(client, tutors):
    response = search(client, sortBy="fullName", sortOrder="asc", page=2, limit=1)
    body = response.json()
    assert names(response) == ["Bob Tran"]
    assert body["page"] == 2
    assert body["limit"] == 1
    assert body["total"] == 2
    assert body["totalPages"] == 2

def test_pagination_is_clamped(client, tutors):
    body = search(client, page=0, limit=1000).json()
    assert body["page"] == 1
    assert body["limit"] == 100

def test_search_results_hide_private_fields(client, tutors):
    tutor = search(client).json()["data"][0]
    assert "identityNumber" not in tutor
    assert "completedSteps" not in tutor
    assert tutor["subjects"][0]["code"] in ("MATH", "PHYSICS")

def test_tutor_detail_includes_certificates(client, tutors):
    response = client.get(f"{API}/tutors/{tutors['alice']['id']}/detail")
    assert response.status_code == 200
    detail = response.json()["data"]
    assert detail["fullName"] == "Alice Nguyen"
    assert [c["schoolName"] for c in detail["certificates"]] == ["National University"]
