"""Tests for the category tree."""

import uuid

import pytest

from app.models.category import Category


@pytest.fixture
def create_category(client, admin_headers):
    def _create(**payload):
        response = client.post("/api/v1/categories", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.json()
        return response.json()

    return _create


class TestCreateCategory:
    def test_slug_and_level(self, create_category):
        home = create_category(name="Home & Garden")
        lighting = create_category(name="Lighting", parent_id=home["id"])

        assert home["slug"] == "home-garden"
        assert home["level"] == 0
        assert lighting["level"] == 1
        assert lighting["parent_id"] == home["id"]

    def test_duplicate_name(self, client, admin_headers, create_category):
        create_category(name="Books")
        response = client.post("/api/v1/categories", json={"name": "Books"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Category name already exists"

    def test_duplicate_slug(self, client, admin_headers, create_category):
        create_category(name="Books", slug="reading")
        response = client.post(
            "/api/v1/categories",
            json={"name": "Novels", "slug": "Reading"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Category slug already exists"

    def test_unknown_parent(self, client, admin_headers):
        response = client.post(
            "/api/v1/categories",
            json={"name": "Orphan", "parent_id": str(uuid.uuid4())},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Parent category not found"

    def test_depth_limit(self, client, admin_headers, make_category):
        parent = None
        for name in ("L0", "L1", "L2", "L3"):
            parent = make_category(name, parent=parent)
        assert parent.level == 3

        response = client.post(
            "/api/v1/categories",
            json={"name": "L4", "parent_id": str(parent.id)},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_customer_cannot_create(self, client, customer_headers):
        response = client.post(
            "/api/v1/categories", json={"name": "Books"}, headers=customer_headers
        )
        assert response.status_code == 403


class TestReadCategories:
    def test_tree(self, client, make_category):
        home = make_category("Home")
        lighting = make_category("Lighting", parent=home)
        make_category("Lamps", parent=lighting)
        make_category("Hidden", parent=home, is_active=False)
        make_category("Books", sort_order=1)

        tree = client.get("/api/v1/categories/tree").json()
        assert [node["name"] for node in tree] == ["Home", "Books"]
        assert [c["name"] for c in tree[0]["children"]] == ["Lighting"]
        assert tree[0]["children"][0]["children"][0]["name"] == "Lamps"

    def test_list_filters(self, client, make_category):
        home = make_category("Home", is_featured=True)
        make_category("Lighting", parent=home)
        make_category("Archive", is_active=False)

        data = client.get("/api/v1/categories").json()
        assert data["total"] == 2
        assert data["items"][0]["name"] == "Home"
        assert [c["name"] for c in data["items"][0]["children"]] == ["Lighting"]

        everything = client.get("/api/v1/categories?active=all").json()
        assert everything["total"] == 3

        children = client.get(f"/api/v1/categories?parent_id={home.id}").json()
        assert [c["name"] for c in children["items"]] == ["Lighting"]

        featured = client.get("/api/v1/categories/featured").json()
        assert [c["name"] for c in featured] == ["Home"]

        top = client.get("/api/v1/categories/top-level").json()
        assert [c["name"] for c in top] == ["Home"]

    def test_detail_by_slug_and_id(self, client, make_category):
        home = make_category("Home")
        lighting = make_category("Lighting", parent=home)
        lamps = make_category("Lamps", parent=lighting)

        by_slug = client.get("/api/v1/categories/lighting").json()
        assert by_slug["id"] == str(lighting.id)
        assert by_slug["parent"]["name"] == "Home"
        assert [c["name"] for c in by_slug["children"]] == ["Lamps"]

        by_id = client.get(f"/api/v1/categories/{lamps.id}").json()
        assert [c["name"] for c in by_id["hierarchy"]] == ["Home", "Lighting", "Lamps"]

    def test_inactive_is_hidden(self, client, make_category):
        make_category("Archive", is_active=False)
        response = client.get("/api/v1/categories/archive")
        assert response.status_code == 404
        assert response.json()["message"] == "Category not found"

    def test_products_include_subcategories(self, client, make_category, make_product):
        home = make_category("Home")
        lighting = make_category("Lighting", parent=home)
        make_product("Sofa", price=300.0, category_id=home.id)
        make_product("Desk Lamp", price=20.0, category_id=lighting.id)
        make_product("Floor Lamp", stock=0, category_id=lighting.id)
        make_product("Old Lamp", is_active=False, category_id=lighting.id)

        data = client.get("/api/v1/categories/home/products").json()
        assert data["total"] == 2
        assert {p["name"] for p in data["items"]} == {"Sofa", "Desk Lamp"}
        assert data["category"]["slug"] == "home"

        cheap = client.get("/api/v1/categories/home/products?max_price=50").json()
        assert [p["name"] for p in cheap["items"]] == ["Desk Lamp"]


class TestUpdateCategory:
    def test_rename_regenerates_slug(self, client, admin_headers, make_category):
        category = make_category("Lights")
        data = client.patch(
            f"/api/v1/categories/{category.id}",
            json={"name": "Lighting & Lamps"},
            headers=admin_headers,
        ).json()
        assert data["slug"] == "lighting-lamps"

    def test_move_relevels_subtree(self, client, admin_headers, make_category, session):
        home = make_category("Home")
        garden = make_category("Garden")
        lighting = make_category("Lighting", parent=home)
        lamps = make_category("Lamps", parent=lighting)

        data = client.patch(
            f"/api/v1/categories/{home.id}",
            json={"parent_id": str(garden.id)},
            headers=admin_headers,
        ).json()
        assert data["level"] == 1

        session.expire_all()
        assert session.get(Category, lighting.id).level == 2
        assert session.get(Category, lamps.id).level == 3

    def test_move_to_top_level(self, client, admin_headers, make_category):
        home = make_category("Home")
        lighting = make_category("Lighting", parent=home)
        data = client.patch(
            f"/api/v1/categories/{lighting.id}",
            json={"parent_id": None},
            headers=admin_headers,
        ).json()
        assert data["parent_id"] is None
        assert data["level"] == 0

    def test_cannot_move_under_descendant(self, client, admin_headers, make_category):
        home = make_category("Home")
        lighting = make_category("Lighting", parent=home)
        response = client.patch(
            f"/api/v1/categories/{home.id}",
            json={"parent_id": str(lighting.id)},
            headers=admin_headers,
        )
        assert response.status_code == 400

        response = client.patch(
            f"/api/v1/categories/{home.id}",
            json={"parent_id": str(home.id)},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_move_cannot_exceed_depth(self, client, admin_headers, make_category):
        deep = make_category("A0")
        for name in ("A1", "A2"):
            deep = make_category(name, parent=deep)
        branch = make_category("B0")
        make_category("B1", parent=branch)

        response = client.patch(
            f"/api/v1/categories/{branch.id}",
            json={"parent_id": str(deep.id)},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_toggles(self, client, admin_headers, make_category):
        category = make_category("Home")
        featured = client.patch(
            f"/api/v1/categories/{category.id}/toggle-featured", headers=admin_headers
        ).json()
        assert featured["is_featured"] is True

        inactive = client.patch(
            f"/api/v1/categories/{category.id}/toggle-active", headers=admin_headers
        ).json()
        assert inactive["is_active"] is False
        assert client.get("/api/v1/categories/home").status_code == 404


class TestDeleteAndCounts:
    def test_delete_unused(self, client, admin_headers, make_category, session):
        category = make_category("Empty")
        response = client.delete(f"/api/v1/categories/{category.id}", headers=admin_headers)
        assert response.status_code == 204
        session.expire_all()
        assert session.get(Category, category.id) is None

    def test_delete_with_products_refused(self, client, admin_headers, make_category, make_product):
        category = make_category("Home")
        make_product(category_id=category.id)
        response = client.delete(f"/api/v1/categories/{category.id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == (
            "Cannot delete category. It contains products or subcategories."
        )

    def test_delete_with_children_refused(self, client, admin_headers, make_category):
        home = make_category("Home")
        make_category("Lighting", parent=home)
        response = client.delete(f"/api/v1/categories/{home.id}", headers=admin_headers)
        assert response.status_code == 400

    def test_update_counts(self, client, admin_headers, make_category, make_product, session):
        home = make_category("Home")
        books = make_category("Books")
        make_product("Lamp", category_id=home.id)
        make_product("Rug", category_id=home.id)
        make_product("Old Rug", category_id=home.id, is_active=False)

        response = client.post("/api/v1/categories/update-counts", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["updated"] == 2

        session.expire_all()
        assert session.get(Category, home.id).product_count == 2
        assert session.get(Category, books.id).product_count == 0
