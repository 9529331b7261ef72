"""Test API endpoints."""

import json

import pytest

from storefront.app import create_app
from storefront.catalog import load_catalog, reset_catalog


class TestProductsEndpoint:
    """Test GET /api/products."""

    def test_returns_200(self, client):
        """Test that /api/products returns 200 OK."""
        response = client.get("/api/products")
        assert response.status_code == 200

    def test_response_shape(self, client):
        """Test that the body carries products, sizes and pagination."""
        data = client.get("/api/products").json
        assert data["success"] is True
        assert [p["id"] for p in data["data"]["products"]] == [1, 2, 3]
        assert data["data"]["sizes"] == ["40", "41", "42", "M", "S", "XS"]
        assert data["pagination"] == {
            "page": 1,
            "limit": 20,
            "totalCount": 3,
            "totalPages": 1,
            "hasNextPage": False,
            "hasPrevPage": False,
        }

    def test_product_fields(self, client):
        """Test that products keep their stored fields as-is."""
        product = client.get("/api/products").json["data"]["products"][0]
        assert product["title"] == "Red Classic Cotton Tee"
        assert product["sale_price"] == "17.99"
        assert product["sizes"] == "XS,S,M"

    def test_search_filter(self, client):
        """Test free-text search across title, description and brand."""
        data = client.get("/api/products?search=HAT").json
        assert [p["id"] for p in data["data"]["products"]] == [2]
        assert data["pagination"]["totalCount"] == 1

    def test_sizes_filter_matches_any(self, client):
        """Test that a product with any selected size matches."""
        data = client.get("/api/products?sizes=S,41").json
        assert [p["id"] for p in data["data"]["products"]] == [1, 3]

    def test_sizes_are_still_listed_when_filtered(self, client):
        """Test that the size vocabulary ignores the active filters."""
        data = client.get("/api/products?sizes=41").json
        assert "XS" in data["data"]["sizes"]

    def test_blank_filters_are_ignored(self, client):
        """Test that whitespace search and empty sizes apply no filter."""
        data = client.get("/api/products?search=%20%20&sizes=").json
        assert data["pagination"]["totalCount"] == 3

    def test_page_past_the_end_is_empty(self, client):
        """Test that a page past the last one is empty, not an error."""
        data = client.get("/api/products?page=2").json
        assert data["success"] is True
        assert data["data"]["products"] == []
        assert data["pagination"]["page"] == 2
        assert data["pagination"]["hasPrevPage"] is True

    @pytest.mark.parametrize("raw", ["0", "-1", "abc", "1.5"])
    def test_invalid_page_is_rejected(self, client, raw):
        """Test that a page below 1 or not an integer returns 400."""
        response = client.get(f"/api/products?page={raw}")
        assert response.status_code == 400
        data = response.json
        assert data["success"] is False
        assert "error" in data


class TestPaging:
    """Test paging over a larger catalog."""

    @pytest.fixture
    def big_client(self, tmp_path, sample_records):
        records = []
        for i in range(1, 46):
            record = dict(sample_records[i % 3], id=i)
            records.append(record)
        path = tmp_path / "big.json"
        path.write_text(json.dumps(records))

        app = create_app({"CATALOG": load_catalog(path), "TESTING": True})
        with app.test_client() as test_client:
            yield test_client

    def test_second_page(self, big_client):
        """Test that page 2 holds products 21-40."""
        data = big_client.get("/api/products?page=2").json
        assert [p["id"] for p in data["data"]["products"]] == list(range(21, 41))
        assert data["pagination"]["hasNextPage"] is True
        assert data["pagination"]["totalPages"] == 3

    def test_last_page(self, big_client):
        """Test that the last page is partial and has no next page."""
        data = big_client.get("/api/products?page=3").json
        assert len(data["data"]["products"]) == 5
        assert data["pagination"]["hasNextPage"] is False


class TestErrorHandling:
    """Test failures while loading the catalog."""

    @pytest.fixture
    def broken_client(self, tmp_path):
        reset_catalog()
        app = create_app({"PRODUCTS_PATH": str(tmp_path / "missing.json"), "TESTING": True})
        with app.test_client() as test_client:
            yield test_client
        reset_catalog()

    def test_products_returns_500(self, broken_client):
        """Test that a catalog load failure returns 500."""
        response = broken_client.get("/api/products")
        assert response.status_code == 500
        assert response.json == {"success": False, "error": "Failed to load products"}

    def test_health_returns_503(self, broken_client):
        """Test that /health reports unhealthy when the catalog cannot load."""
        response = broken_client.get("/health")
        assert response.status_code == 503
        assert response.json["status"] == "unhealthy"


class TestHealthEndpoint:
    def test_health(self, client):
        """Test that /health reports the catalog size."""
        data = client.get("/health").json
        assert data["success"] is True
        assert data["status"] == "healthy"
        assert data["totalProducts"] == 3
        assert "timestamp" in data
