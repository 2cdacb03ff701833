# Gallery, features and the company singleton.

from __future__ import annotations

import routers.company
from tests.support import API, png, stored_files, stored_name


# ---------------------- Gallery ----------------------
def test_gallery_unique_title(client, settings, auth_headers) -> None:
    first = client.post(f"{API}/gallery", data={"title": "Kitchen"}, files={"imageUrl": png()}, headers=auth_headers)
    second = client.post(f"{API}/gallery", data={"title": "Kitchen"}, files={"imageUrl": png()}, headers=auth_headers)

    assert first.status_code == 201
    assert second.status_code == 409
    assert stored_files(settings) == [stored_name(first.json()["data"]["imageUrl"])]


def test_gallery_uses_imageurl_field(client, settings, auth_headers) -> None:
    response = client.post(f"{API}/gallery", data={"title": "Kitchen"}, files={"image": png()}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["expectedFields"] == ["imageUrl"]
    assert stored_files(settings) == []


def test_gallery_update_and_delete(client, settings, auth_headers) -> None:
    item = client.post(f"{API}/gallery", data={"title": "Kitchen"}, files={"imageUrl": png()}, headers=auth_headers)
    item = item.json()["data"]

    updated = client.put(
        f"{API}/gallery/{item['id']}",
        data={"title": "Bathroom"},
        files={"imageUrl": png("b.png")},
        headers=auth_headers,
    ).json()["data"]

    assert updated["title"] == "Bathroom"
    assert stored_files(settings) == [stored_name(updated["imageUrl"])]
    assert client.get(f"{API}/gallery").json()["count"] == 1
    assert client.delete(f"{API}/gallery/{item['id']}", headers=auth_headers).status_code == 200
    assert stored_files(settings) == []


# ---------------------- Features ----------------------
def test_feature_stores_image_key(client, auth_headers) -> None:
    response = client.post(
        f"{API}/features",
        data={"title": "Eco products", "subtitle": "Safe for pets"},
        files={"image": png()},
        headers=auth_headers,
    )

    data = response.json()["data"]
    assert response.status_code == 201
    assert data["image"].startswith("https://testserver/uploads/image-")
    assert "imageUrl" not in data


def test_features_pagination(client, auth_headers) -> None:
    for index in range(3):
        client.post(
            f"{API}/features",
            data={"title": f"Feature {index}", "subtitle": "x"},
            files={"image": png()},
            headers=auth_headers,
        )

    page_one = client.get(f"{API}/features/paginated", params={"page": 1, "limit": 2}).json()
    page_two = client.get(f"{API}/features/paginated", params={"page": 2, "limit": 2}).json()
    bad = client.get(f"{API}/features/paginated", params={"page": 0})

    assert page_one["count"] == 2
    assert page_one["pagination"]["totalItems"] == 3
    assert page_one["pagination"]["totalPages"] == 2
    assert page_one["pagination"]["hasNextPage"] is True
    assert page_two["count"] == 1
    assert page_two["pagination"]["hasPrevPage"] is True
    assert bad.status_code == 400


def test_feature_replace_and_delete(client, settings, auth_headers) -> None:
    feature = client.post(
        f"{API}/features",
        data={"title": "Eco", "subtitle": "Green"},
        files={"image": png()},
        headers=auth_headers,
    ).json()["data"]

    updated = client.put(
        f"{API}/features/{feature['id']}",
        files={"image": png("new.png")},
        headers=auth_headers,
    ).json()["data"]

    assert stored_files(settings) == [stored_name(updated["image"])]
    assert client.delete(f"{API}/features/{feature['id']}", headers=auth_headers).status_code == 200
    assert stored_files(settings) == []


# ---------------------- Company ----------------------
def test_company_singleton(client, settings, auth_headers) -> None:
    missing = client.get(f"{API}/company")
    created = client.post(f"{API}/company", data={"title": "Victoria Cleaning"}, files={"image": png()}, headers=auth_headers)
    again = client.post(f"{API}/company", data={"title": "Other"}, files={"image": png()}, headers=auth_headers)

    assert missing.status_code == 404
    assert created.status_code == 201
    assert created.json()["data"]["id"] == "company"
    assert again.status_code == 409
    assert again.json()["message"] == "Company already exists. Use update instead."
    assert stored_files(settings) == [stored_name(created.json()["data"]["imageUrl"])]


def test_concurrent_company_create_loses_on_constant_key(client, db, settings, auth_headers, monkeypatch) -> None:
    created = client.post(f"{API}/company", data={"title": "Victoria Cleaning"}, files={"image": png()}, headers=auth_headers)
    before = stored_files(settings)
    monkeypatch.setattr(routers.company, "get_document", lambda *args, **kwargs: None)

    again = client.post(f"{API}/company", data={"title": "Other"}, files={"image": png()}, headers=auth_headers)

    assert created.status_code == 201
    assert again.status_code == 409
    assert stored_files(settings) == before
    assert db["company"].count_documents({}) == 1
    assert db["company"].find_one({"_id": "company"})["title"] == "Victoria Cleaning"


def test_company_title_length(client, settings, auth_headers) -> None:
    response = client.post(f"{API}/company", data={"title": "x" * 101}, files={"image": png()}, headers=auth_headers)

    assert response.status_code == 400
    assert stored_files(settings) == []


def test_company_update_before_create(client, auth_headers) -> None:
    response = client.put(f"{API}/company", data={"title": "New"}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Company not found. Create it first."


def test_company_update_and_delete(client, settings, auth_headers) -> None:
    client.post(f"{API}/company", data={"title": "Victoria"}, files={"image": png()}, headers=auth_headers)

    updated = client.put(f"{API}/company", files={"image": png("logo.png")}, headers=auth_headers).json()["data"]

    assert updated["title"] == "Victoria"
    assert stored_files(settings) == [stored_name(updated["imageUrl"])]
    assert client.get(f"{API}/company").json()["data"]["imageUrl"] == updated["imageUrl"]
    assert client.delete(f"{API}/company", headers=auth_headers).status_code == 200
    assert stored_files(settings) == []
    assert client.delete(f"{API}/company", headers=auth_headers).status_code == 404
