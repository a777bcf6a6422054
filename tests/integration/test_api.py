"""
Integration Tests - Seller Analytics API
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from sokonova_analytics.analytics import SellerAnalyticsService
from sokonova_analytics.serving.api import create_api_app
from sokonova_analytics.serving.api.routes.seller_analytics import get_analytics_service

BASE = "/api/v1/analytics/seller"


class UnavailableRepository:
    """Repository whose store is down"""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        return fail


@pytest.fixture
def shop(marketplace):
    seller = marketplace.seller("Nova Crafts")
    basket = marketplace.product(seller, title="Woven Basket", price="50.00", age_days=200, stock=40)
    candle = marketplace.product(seller, title="Shea Candle", price="20.00", age_days=20, stock=1)
    buyer = marketplace.buyer("Amina")
    marketplace.order(buyer, [(basket, 1)], days_ago=40)
    marketplace.order(buyer, [(candle, 10)], days_ago=3)
    marketplace.review(seller, 4, days_ago=2)
    marketplace.seller_id = seller.id
    return marketplace


@pytest.fixture
def client(shop, make_service):
    app = create_api_app(use_lifespan=False)
    app.dependency_overrides[get_analytics_service] = lambda: make_service(shop)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def down_client(analytics_config):
    app = create_api_app(use_lifespan=False)
    app.dependency_overrides[get_analytics_service] = lambda: SellerAnalyticsService(
        UnavailableRepository(), config=analytics_config
    )
    with TestClient(app) as test_client:
        yield test_client


class TestDashboardEndpoints:
    """Tests for summary and profitability endpoints"""

    def test_summary(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["sellerMeta"]["shopName"] == "Nova Crafts"
        assert data["revenue7d"]["amount"] == pytest.approx(180.0)
        assert data["topSkus"][0]["title"] == "Shea Candle"
        assert data["rating"]["trend"][0]["rating"] == 4

    def test_profitability_camel_case(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/profitability")

        assert response.status_code == 200
        data = response.json()
        assert data["totalRevenue"] == pytest.approx(250.0)
        assert data["orderCount"] == 2
        assert "profitMargin" in data

    def test_orders_limit(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/orders", params={"limit": 1})

        assert response.status_code == 200
        orders = response.json()
        assert len(orders) == 1
        assert orders[0]["items"][0]["productTitle"] == "Shea Candle"
        assert orders[0]["status"] == "PAID"

    @pytest.mark.parametrize("limit", [0, 101])
    def test_orders_limit_validated(self, client, shop, limit):
        response = client.get(f"{BASE}/{shop.seller_id}/orders", params={"limit": limit})

        assert response.status_code == 422

    def test_recent_orders(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/recent-orders")

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_simulate_pricing(self, client, shop):
        response = client.post(
            f"{BASE}/{shop.seller_id}/simulate-pricing",
            json={"feeChange": 5, "bundleDiscount": 10},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["simulated"]["totalRevenue"] == pytest.approx(225.0)
        assert data["difference"]["totalRevenue"] == pytest.approx(-25.0)

    def test_simulate_pricing_rejects_out_of_range(self, client, shop):
        response = client.post(f"{BASE}/{shop.seller_id}/simulate-pricing", json={"feeChange": 150})

        assert response.status_code == 422

    def test_top_products(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/top-products")

        assert response.status_code == 200
        assert {p["totalSold"] for p in response.json()} == {1}
        assert set(response.json()[0]) == {"id", "title", "price", "totalSold"}


class TestInventoryEndpoints:
    """Tests for inventory endpoints"""

    def test_velocity(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/inventory-velocity")

        assert response.status_code == 200
        data = response.json()
        assert len(data["products"]) == 2
        assert set(data["aggregate"]) == {
            "totalInventory", "totalSold", "avgDaysOfSupply", "slowMovingItems", "fastMovingItems",
        }
        candle = next(p for p in data["products"] if p["productName"] == "Shea Candle")
        assert set(candle) == {
            "productId", "productName", "currentInventory", "totalSold",
            "dailySalesRate", "daysOfSupply", "velocity", "status",
        }
        assert candle["totalSold"] == 10
        assert candle["velocity"] == pytest.approx(10 / 90)

    def test_risk(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/inventory-risk")

        assert response.status_code == 200
        data = response.json()
        assert data["aggregate"]["totalProducts"] == 2
        assert set(data["products"][0]["riskFactors"]) == {"aging", "velocity", "rating"}

    def test_aging(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/aging-inventory")

        assert response.status_code == 200
        assert [a["status"] for a in response.json()] == ["very_old"]

    def test_stockout_predictions(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/stockout-predictions")

        assert response.status_code == 200
        candle = next(p for p in response.json() if p["productName"] == "Shea Candle")
        assert candle["riskOfStockout"] == "high"

    def test_recommendations_without_body(self, client, shop):
        response = client.post(f"{BASE}/{shop.seller_id}/inventory-recommendations")

        assert response.status_code == 200
        recs = response.json()
        assert {r["type"] for r in recs} >= {"restock", "bundle"}
        bundle = next(r for r in recs if r["type"] == "bundle")
        assert "discountPercentage" not in bundle
        assert "quantity" not in bundle

    def test_recommendations_with_product(self, client, shop):
        response = client.post(
            f"{BASE}/{shop.seller_id}/inventory-recommendations",
            json={"productId": "ignored"},
        )

        assert response.status_code == 200


class TestBuyerEndpoints:
    """Tests for buyer endpoints"""

    def test_cohorts(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/buyer-cohorts")

        assert response.status_code == 200
        cohort = response.json()[0]
        assert cohort["buyerCount"] == 2
        assert cohort["uniqueBuyers"] == 1

    def test_segments(self, client, shop):
        response = client.get(f"{BASE}/{shop.seller_id}/buyer-segments")

        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == ["highValue", "frequent", "atRisk", "seasonal"]

    def test_discount_campaign(self, client, shop):
        response = client.post(
            f"{BASE}/{shop.seller_id}/segments/atRisk/discount-campaign",
            json={"discountPercentage": 15, "durationDays": 30},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["segmentId"] == "atRisk"
        assert data["maxUses"] == 100
        assert data["status"] == "active"
        assert data["id"].startswith("campaign_")
        assert data["redemptionCount"] == 0
        assert "usedCount" not in data

    @pytest.mark.parametrize("body", [
        {"discountPercentage": 0, "durationDays": 30},
        {"discountPercentage": 10, "durationDays": 0},
        {"durationDays": 30},
    ])
    def test_discount_campaign_validation(self, client, shop, body):
        response = client.post(f"{BASE}/{shop.seller_id}/segments/atRisk/discount-campaign", json=body)

        assert response.status_code == 422


class TestErrorHandling:
    """Tests for store failures and service endpoints"""

    def test_store_failure_is_503(self, down_client):
        response = down_client.get(f"{BASE}/seller-1/profitability")

        assert response.status_code == 503
        assert response.json() == {"error": "Analytics store unavailable"}

    def test_liveness(self, client):
        assert client.get("/api/v1/health/live").json() == {"status": "alive"}

    def test_readiness_without_database(self, client):
        response = client.get("/api/v1/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_info(self, client):
        data = client.get("/api/v1/info").json()

        assert data["name"] == "SOKONOVA Seller Analytics API"

    def test_security_headers(self, client):
        response = client.get("/api/v1/health/live")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Request-ID" in response.headers
