"""
POS checkout and cash drawer endpoints.
"""


class TestPosApi:
    def test_cash_sale_and_stats(self, client, employee_headers, products):
        beer, _ = products
        resp = client.post(
            "/api/pos/sales",
            json={
                "items": [{"product_id": beer.id, "quantity": 3}],
                "payment_method": "CASH",
                "cash_received_cents": 20000,
            },
            headers=employee_headers,
        )
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["total_cents"] == 15000
        assert sale["change_cents"] == 5000
        assert sale["drawer_opened"] is True

        fetched = client.get(f"/api/pos/sales/{sale['id']}", headers=employee_headers)
        assert fetched.get_json()["sale"]["items"][0]["product_name"] == "Beer"

        stats = client.get("/api/pos/stats", headers=employee_headers).get_json()
        assert stats["transaction_count"] == 1
        assert stats["total_cash_cents"] == 15000

        listed = client.get("/api/pos/sales", headers=employee_headers).get_json()
        assert listed["count"] == 1

    def test_client_price_is_ignored(self, client, employee_headers, products):
        beer, _ = products
        resp = client.post(
            "/api/pos/sales",
            json={"items": [{"product_id": beer.id, "quantity": 1, "unit_price_cents": 1}], "payment_method": "CARD"},
            headers=employee_headers,
        )
        assert resp.get_json()["sale"]["total_cents"] == 5000

    def test_bad_tender(self, client, employee_headers, products):
        beer, _ = products
        resp = client.post(
            "/api/pos/sales",
            json={"items": [{"product_id": beer.id, "quantity": 1}], "payment_method": "BARTER"},
            headers=employee_headers,
        )
        assert resp.status_code == 400

    def test_short_cash_conflicts(self, client, employee_headers, products):
        beer, _ = products
        resp = client.post(
            "/api/pos/sales",
            json={"items": [{"product_id": beer.id, "quantity": 1}], "payment_method": "CASH", "cash_received_cents": 100},
            headers=employee_headers,
        )
        assert resp.status_code == 409

    def test_bad_date_param(self, client, employee_headers):
        assert client.get("/api/pos/sales?date=not-a-date", headers=employee_headers).status_code == 400
        assert client.get("/api/pos/stats?date=2026-13-01", headers=employee_headers).status_code == 400

    def test_unknown_sale(self, client, employee_headers):
        assert client.get("/api/pos/sales/999", headers=employee_headers).status_code == 404


class TestDrawerApi:
    def test_status_reports_simulation(self, client, employee_headers):
        status = client.get("/api/drawer/status", headers=employee_headers).get_json()
        assert status["connected"] is True
        assert status["simulation"] is True
        assert status["port"] == "SIMULATION"

    def test_employee_open_without_reason_raises_alert(self, client, employee_headers, admin_headers):
        resp = client.post("/api/drawer/open", json={}, headers=employee_headers)
        assert resp.status_code == 200
        assert resp.get_json()["log"]["is_authorized"] is False

        alerts = client.get("/api/drawer/alerts?acknowledged=false", headers=admin_headers).get_json()
        assert alerts["count"] == 1
        alert = alerts["items"][0]
        assert alert["type"] == "UNAUTHORIZED_OPEN"
        assert alert["severity"] == "HIGH"

        ack = client.post(f"/api/drawer/alerts/{alert['id']}/acknowledge", headers=admin_headers)
        assert ack.status_code == 200
        again = client.post(f"/api/drawer/alerts/{alert['id']}/acknowledge", headers=admin_headers)
        assert again.status_code == 409

        assert client.get("/api/drawer/alerts?acknowledged=false", headers=admin_headers).get_json()["count"] == 0

    def test_employee_open_with_reason_is_authorized(self, client, employee_headers, admin_headers):
        resp = client.post("/api/drawer/open", json={"reason": "Change for table 4"}, headers=employee_headers)
        log = resp.get_json()["log"]
        assert log["is_authorized"] is True
        assert log["event_type"] == "MANUAL"
        assert log["simulated"] is True

        logs = client.get("/api/drawer/logs", headers=admin_headers).get_json()
        assert logs["count"] == 1
        assert client.get("/api/drawer/alerts", headers=admin_headers).get_json()["count"] == 0

    def test_admin_open_without_reason_is_authorized(self, client, admin_headers):
        resp = client.post("/api/drawer/open", headers=admin_headers)
        assert resp.get_json()["log"]["is_authorized"] is True

    def test_acknowledge_unknown_alert(self, client, admin_headers):
        assert client.post("/api/drawer/alerts/77/acknowledge", headers=admin_headers).status_code == 404
