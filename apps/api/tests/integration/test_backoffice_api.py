

def test_order_detail_lists_plates(client, post_orders_paid, auth_headers, build_order_payload):
    post_orders_paid(build_order_payload())

    response = client.get("/api/v1/orders/1001", headers=auth_headers["ops"])

    assert response.status_code == 200
    body = response.json()
    assert body["order_number"] == "1001"
    assert body["activated"] is True
    assert [plate["source_key"] for plate in body["plates"]] == [
        "1001|li_77|0",
        "1001|li_77|1",
    ]
    assert body["plate_ids"] == [plate["id"] for plate in body["plates"]]


def test_order_detail_unknown_order_is_404(client, auth_headers):
    response = client.get("/api/v1/orders/9999", headers=auth_headers["admin"])

    assert response.status_code == 404


def test_order_list_requires_backoffice_token(client):
    assert client.get("/api/v1/orders").status_code == 401


def test_order_list_filters_by_status(client, post_orders_paid, auth_headers, build_order_payload):
    post_orders_paid(build_order_payload())

    paid = client.get("/api/v1/orders", params={"status": "paid"}, headers=auth_headers["ops"])
    cancelled = client.get(
        "/api/v1/orders", params={"status": "cancelled"}, headers=auth_headers["ops"]
    )

    assert [item["order_number"] for item in paid.json()["items"]] == ["1001"]
    assert cancelled.json()["items"] == []


def test_webhook_events_ledger_is_inspectable(
    client, post_orders_paid, auth_headers, build_order_payload
):
    post_orders_paid(build_order_payload(), webhook_id="wh-ok")
    post_orders_paid(
        build_order_payload(order_number=1002, line_items=[]), webhook_id="wh-bad"
    )

    listing = client.get("/api/v1/webhook-events", headers=auth_headers["ops"])
    failed = client.get(
        "/api/v1/webhook-events", params={"status": "failed"}, headers=auth_headers["ops"]
    )
    detail = client.get("/api/v1/webhook-events/wh-ok", headers=auth_headers["ops"])

    assert {item["webhook_id"] for item in listing.json()["items"]} == {"wh-ok", "wh-bad"}
    assert [item["webhook_id"] for item in failed.json()["items"]] == ["wh-bad"]
    assert failed.json()["items"][0]["error"] == "No Google URL found in line_items"
    assert detail.json()["status"] == "processed"
    assert detail.json()["created_plates_count"] == 2


def test_webhook_event_detail_unknown_is_404(client, auth_headers):
    response = client.get("/api/v1/webhook-events/missing", headers=auth_headers["ops"])

    assert response.status_code == 404


def test_webhook_events_reject_non_backoffice_role(client, auth_headers):
    response = client.get("/api/v1/webhook-events", headers=auth_headers["merchant"])

    assert response.status_code == 401


def test_plate_slug_redirects_to_review_page(
    client, post_orders_paid, auth_headers, build_order_payload
):
    post_orders_paid(build_order_payload())
    plates = client.get("/api/v1/orders/1001", headers=auth_headers["ops"]).json()["plates"]

    response = client.get(f"/p/{plates[0]['slug']}", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "https://g.page/r/ABC123/review"


def test_unknown_plate_slug_is_404(client):
    response = client.get("/p/doesnotexist", follow_redirects=False)

    assert response.status_code == 404
