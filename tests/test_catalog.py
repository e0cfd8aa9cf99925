from bson import ObjectId

API = "/api/v1"


def create(client, resource, payload):
    response = client.post(f"{API}/{resource}", json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]


def test_api_root_and_health(client):
    assert client.get("/").get_json() == {
        "success": True,
        "message": "API working successfully",
        "data": None,
    }
    assert client.get("/health").get_json() == {"status": "ok"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get(f"{API}/nothing-here")
    body = response.get_json()
    assert response.status_code == 404
    assert body["success"] is False
    assert body["data"] is None


def test_category_lifecycle(client):
    category = create(client, "categories", {"name": " Phones ", "imageUrl": "http://x/p.png"})
    assert category["name"] == "Phones"
    assert category["image"] == "http://x/p.png"

    response = client.put(f"{API}/categories/{category['_id']}", json={"name": "Mobiles"})
    assert response.get_json()["data"]["name"] == "Mobiles"
    assert response.get_json()["data"]["image"] == "http://x/p.png"

    listing = client.get(f"{API}/categories?search=mob").get_json()
    assert listing["success"] is True
    assert [item["name"] for item in listing["data"]] == ["Mobiles"]
    assert listing["pagination"]["totalItems"] == 1

    assert client.delete(f"{API}/categories/{category['_id']}").status_code == 200
    assert client.get(f"{API}/categories/{category['_id']}").status_code == 404


def test_missing_name_is_a_validation_error(client):
    response = client.post(f"{API}/categories", json={})
    body = response.get_json()
    assert response.status_code == 400
    assert body["message"] == "Name is required."
    assert body["errors"] == ["name is required."]


def test_invalid_identifier_is_rejected(client):
    response = client.get(f"{API}/brands/not-an-id")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid brand identifier."


def test_category_delete_blocked_while_products_reference_it(client):
    category = create(client, "categories", {"name": "Audio"})
    create(
        client,
        "products",
        {"name": "Headphones", "price": 99, "quantity": 3, "proCategories": [category["_id"]]},
    )

    response = client.delete(f"{API}/categories/{category['_id']}")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Cannot delete category. Products are referencing it."
    assert client.get(f"{API}/categories/{category['_id']}").status_code == 200


def test_brand_delete_blocked_while_products_reference_it(client):
    category = create(client, "categories", {"name": "Audio"})
    brand = create(client, "brands", {"name": "Sonic"})
    create(
        client,
        "products",
        {
            "name": "Speaker",
            "price": 50,
            "quantity": 1,
            "proCategories": [category["_id"]],
            "proBrand": brand["_id"],
        },
    )

    response = client.delete(f"{API}/brands/{brand['_id']}")
    assert response.status_code == 400
    assert response.get_json()["success"] is False

    missing = client.delete(f"{API}/brands/{ObjectId()}")
    assert missing.status_code == 404


def test_product_create_requires_core_fields(client):
    response = client.post(f"{API}/products", json={"name": "Lonely"})
    body = response.get_json()
    assert response.status_code == 400
    assert set(body["errors"]) == {
        "price is required.",
        "quantity is required.",
        "proCategories is required.",
    }


def test_product_update_keeps_fields_not_provided(client):
    category = create(client, "categories", {"name": "Books"})
    product = create(
        client,
        "products",
        {
            "name": "Novel",
            "description": "A long story",
            "price": 20,
            "offerPrice": 15,
            "quantity": 4,
            "proCategories": [category["_id"]],
            "images": [{"image": "1", "url": "http://x/novel.png"}],
        },
    )

    response = client.put(f"{API}/products/{product['_id']}", json={"quantity": 9})
    updated = response.get_json()["data"]
    assert updated["quantity"] == 9
    assert updated["price"] == 20
    assert updated["description"] == "A long story"
    assert updated["images"] == [{"image": "1", "url": "http://x/novel.png"}]

    too_expensive = client.put(f"{API}/products/{product['_id']}", json={"offerPrice": 30})
    assert too_expensive.status_code == 400


def test_product_reads_populate_category_and_brand(client):
    category = create(client, "categories", {"name": "Garden"})
    brand = create(client, "brands", {"name": "Greenly"})
    product = create(
        client,
        "products",
        {
            "name": "Rake",
            "price": 12,
            "quantity": 2,
            "proCategories": [category["_id"]],
            "proBrand": brand["_id"],
        },
    )

    fetched = client.get(f"{API}/products/{product['_id']}").get_json()["data"]
    assert fetched["proCategories"][0]["name"] == "Garden"
    assert fetched["proBrand"] == {"_id": brand["_id"], "name": "Greenly"}

    by_category = client.get(f"{API}/products?category={category['_id']}").get_json()
    assert [item["name"] for item in by_category["data"]] == ["Rake"]

    other = create(client, "categories", {"name": "Kitchen"})
    empty = client.get(f"{API}/products?category={other['_id']}").get_json()
    assert empty["data"] == []
    assert empty["pagination"]["totalPages"] == 0

    found = client.get(f"{API}/products/search?name=rak").get_json()
    assert [item["name"] for item in found["data"]] == ["Rake"]


def test_poster_requires_name_and_image(client):
    response = client.post(f"{API}/posters", json={"posterName": "Summer"})
    assert response.status_code == 400
    assert response.get_json()["message"] == "Name and image are required."

    poster = create(
        client,
        "posters",
        {"posterName": "Summer", "imageUrl": "http://x/s.png", "targetUrl": "/sale"},
    )
    listing = client.get(f"{API}/posters?search=sale").get_json()
    assert [item["_id"] for item in listing["data"]] == [poster["_id"]]


def test_product_search_matches_brand_and_category_names(client):
    phones = create(client, "categories", {"name": "Phones"})
    watches = create(client, "categories", {"name": "Watches"})
    zenith = create(client, "brands", {"name": "Zenith"})
    other = create(client, "brands", {"name": "Orbit"})
    chrono = create(
        client,
        "products",
        {
            "name": "Chrono",
            "price": 250,
            "quantity": 1,
            "proCategories": [watches["_id"]],
            "proBrand": zenith["_id"],
        },
    )
    create(
        client,
        "products",
        {
            "name": "Pocket",
            "price": 400,
            "quantity": 1,
            "proCategories": [phones["_id"]],
            "proBrand": other["_id"],
        },
    )

    by_brand = client.get(f"{API}/products?search=zen").get_json()
    assert [item["_id"] for item in by_brand["data"]] == [chrono["_id"]]
    assert by_brand["data"][0]["proBrand"]["name"] == "Zenith"
    assert by_brand["pagination"]["totalItems"] == 1
    assert by_brand["pagination"]["totalPages"] == 1

    by_category = client.get(f"{API}/products?search=watch").get_json()
    assert [item["name"] for item in by_category["data"]] == ["Chrono"]

    filtered_out = client.get(f"{API}/products?search=watch&category={phones['_id']}").get_json()
    assert filtered_out["data"] == []
    assert filtered_out["pagination"]["totalItems"] == 0
    assert filtered_out["pagination"]["totalPages"] == 0

    by_brand_filter = client.get(f"{API}/products?brand={other['_id']}").get_json()
    assert [item["name"] for item in by_brand_filter["data"]] == ["Pocket"]
