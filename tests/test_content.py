from bson import ObjectId

from conftest import make_content

PAYLOAD = {
    "platform": "Netflix",
    "title": "Sacred Games",
    "primaryLanguage": "Hindi",
    "year": 2018,
    "assignedGenre": "Crime",
    "assignedFormat": "TV Series",
    "releaseDate": "2018-07-06",
    "seasons": 2,
    "episodes": 16,
    "source": "Commissioned",
    "dubbing": {"tamil": True, "telugu": True, "english": False},
}


def test_create_then_fetch_keeps_total_dubbings(client, admin_headers):
    resp = client.post("/api/content", json=PAYLOAD, headers=admin_headers)
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["totalDubbings"] == 2

    resp = client.get(f"/api/content/{created['_id']}", headers=admin_headers)
    assert resp.status_code == 200
    fetched = resp.json()["data"]
    assert fetched["totalDubbings"] == 2
    assert fetched["createdBy"]["username"] == "root"
    assert fetched["sourceFlags"] == {"inHouse": False, "commissioned": True, "coProduction": False}
    assert fetched["ageRating"] == "Not Rated"
    assert fetched["releaseDate"].startswith("2018-07-06")


def test_client_supplied_total_is_ignored(client, admin_headers):
    resp = client.post("/api/content", json=dict(PAYLOAD, totalDubbings=9), headers=admin_headers)
    assert resp.json()["data"]["totalDubbings"] == 2


def test_create_logs_activity(client, db, admin_headers):
    client.post("/api/content", json=PAYLOAD, headers=admin_headers)
    activity = db["useractivity"].find_one({"action": "create"})
    assert activity["details"]["title"] == "Sacred Games"


def test_create_lists_offending_fields(client, admin_headers):
    resp = client.post("/api/content", json={"platform": "Netflix", "year": 1800}, headers=admin_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    fields = {e["field"] for e in body["errors"]}
    assert {"title", "primaryLanguage", "year"} <= fields


def test_create_requires_admin(client, user_headers):
    assert client.post("/api/content", json=PAYLOAD, headers=user_headers).status_code == 403


def test_duplicate_create_conflicts(client, admin_headers):
    client.post("/api/content", json=PAYLOAD, headers=admin_headers)
    resp = client.post("/api/content", json=PAYLOAD, headers=admin_headers)
    assert resp.status_code == 409


def test_check_duplicate(client, db, admin, admin_headers):
    make_content(db, admin, title="Kota Factory", year=2019, platform="Netflix")
    resp = client.post(
        "/api/content/check-duplicate",
        json={"platform": "Netflix", "title": "Kota Factory", "year": 2019},
        headers=admin_headers,
    )
    data = resp.json()["data"]
    assert data["exists"] is True
    assert data["existingContent"]["title"] == "Kota Factory"

    resp = client.post(
        "/api/content/check-duplicate",
        json={"platform": "Netflix", "title": "Kota Factory", "year": 2020},
        headers=admin_headers,
    )
    assert resp.json()["data"]["exists"] is False


def test_partial_update_recomputes_derived_fields(client, db, admin_headers):
    created = client.post("/api/content", json=PAYLOAD, headers=admin_headers).json()["data"]
    resp = client.put(
        f"/api/content/{created['_id']}",
        json={"dubbing": {"hindi": True}, "source": "In-House"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["totalDubbings"] == 3
    assert updated["dubbing"]["tamil"] is True
    assert updated["sourceFlags"] == {"inHouse": True, "commissioned": False, "coProduction": False}
    assert updated["title"] == "Sacred Games"


def test_update_rejects_invalid_year(client, admin_headers):
    created = client.post("/api/content", json=PAYLOAD, headers=admin_headers).json()["data"]
    resp = client.put(f"/api/content/{created['_id']}", json={"year": 2050}, headers=admin_headers)
    assert resp.status_code == 400


def test_update_into_duplicate_conflicts(client, db, admin, admin_headers):
    make_content(db, admin, title="Other", year=2018, platform="Netflix")
    created = client.post("/api/content", json=PAYLOAD, headers=admin_headers).json()["data"]
    resp = client.put(f"/api/content/{created['_id']}", json={"title": "Other"}, headers=admin_headers)
    assert resp.status_code == 409


def test_delete_is_soft(client, db, admin, admin_headers):
    doc = make_content(db, admin)
    assert client.delete(f"/api/content/{doc['_id']}", headers=admin_headers).status_code == 200
    assert db["content"].find_one({"_id": doc["_id"]})["isActive"] is False
    assert client.get(f"/api/content/{doc['_id']}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/content/{doc['_id']}", headers=admin_headers).status_code == 404


def test_missing_content(client, admin_headers):
    assert client.get(f"/api/content/{ObjectId()}", headers=admin_headers).status_code == 404


def test_list_content_filters_and_search(client, db, admin, user_headers):
    for title, year in (("Alpha", 2019), ("Beta", 2020), ("Gamma", 2021), ("Delta", 2023)):
        make_content(db, admin, title=title, year=year)

    resp = client.get("/api/content", params={"year": "2020-2022"}, headers=user_headers)
    data = resp.json()["data"]
    assert data["totalDocs"] == 2
    assert {doc["title"] for doc in data["docs"]} == {"Beta", "Gamma"}
    assert data["docs"][0]["createdBy"]["username"] == "root"

    resp = client.get("/api/content", params={"search": "amm"}, headers=user_headers)
    assert [doc["title"] for doc in resp.json()["data"]["docs"]] == ["Gamma"]

    resp = client.get("/api/content", params={"sortBy": "year", "sortOrder": "asc", "limit": "2"}, headers=user_headers)
    data = resp.json()["data"]
    assert [doc["year"] for doc in data["docs"]] == [2019, 2020]
    assert data["hasNextPage"] is True
    assert data["nextPage"] == 2


def test_repeated_search_and_sort_keys(client, db, admin, user_headers):
    for title, year in (("Alpha", 2019), ("Gamma", 2021)):
        make_content(db, admin, title=title, year=year)

    resp = client.get("/api/content?search=amm&search=alp&sortBy=year&sortBy=title&sortOrder=asc", headers=user_headers)
    assert resp.status_code == 200
    assert [doc["title"] for doc in resp.json()["data"]["docs"]] == ["Gamma"]
