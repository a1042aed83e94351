import pytest

JERSEY = {
    "type": "Player",
    "name": "SANTOS",
    "number": "10",
    "sizeCategory": "Adult",
    "size": "M",
    "sleeve": "Short",
    "shorts": "Yes",
}
INVALID_LINK = "Invalid link. Please use the link provided by the administrator."


@pytest.fixture
def order(client):
    response = client.post(
        "/orders/",
        json={"customer": "Harbor City FC", "mobile": "0917-555-0101", "material": "Dri-Fit"},
    )
    return response.json()


def _portal_url(order_id, suffix=""):
    return f"/portal/orders/{order_id}{suffix}"


def test_portal_view_with_valid_token(anonymous_client, order):
    response = anonymous_client.get(_portal_url(order["id"]), params={"token": order["linkToken"]})

    assert response.status_code == 200
    body = response.json()
    assert body["orderId"] == order["id"]
    assert body["canEdit"] is True
    assert body["showEntryForm"] is True
    assert body["displayQuantity"] == 0


@pytest.mark.parametrize("token", ["wrong-token", "", None])
def test_token_gate_rejects_without_disclosing_order(anonymous_client, order, token):
    params = {"token": token} if token is not None else {}
    response = anonymous_client.get(_portal_url(order["id"]), params=params)

    assert response.status_code in (400, 403)
    assert response.json() == {"detail": INVALID_LINK}
    assert order["customer"] not in response.text


def test_unknown_order_and_wrong_token_look_the_same(anonymous_client, order):
    unknown = anonymous_client.get(_portal_url("does-not-exist"), params={"token": order["linkToken"]})
    mismatch = anonymous_client.get(_portal_url(order["id"]), params={"token": "x" * 32})

    assert unknown.status_code == mismatch.status_code == 403
    assert unknown.json() == mismatch.json()


def test_token_of_another_order_is_rejected(client, anonymous_client, order):
    other = client.post(
        "/orders/",
        json={"customer": "Northside Hoops", "mobile": "0917-555-0102", "material": "Mesh"},
    ).json()

    response = anonymous_client.post(
        _portal_url(order["id"], "/submit"),
        params={"token": other["linkToken"]},
        json={"jerseys": [JERSEY]},
    )

    assert response.status_code == 403
    assert client.get(f"/orders/{order['id']}").json()["status"] == "pending"


def test_customer_page_renders_only_with_matching_token(anonymous_client, order):
    good = anonymous_client.get("/customer", params={"orderId": order["id"], "token": order["linkToken"]})
    assert good.status_code == 200
    assert "Harbor City FC" in good.text
    assert 'id="entry"' in good.text

    bad = anonymous_client.get("/customer", params={"orderId": order["id"], "token": "nope"})
    assert bad.status_code == 403
    assert "Harbor City FC" not in bad.text
    assert 'id="entry"' not in bad.text

    missing = anonymous_client.get("/customer", params={"orderId": order["id"]})
    assert missing.status_code == 400
    assert 'id="entry"' not in missing.text


def test_submit_then_locked(client, anonymous_client, order):
    params = {"token": order["linkToken"]}

    response = anonymous_client.post(
        _portal_url(order["id"], "/submit"),
        params=params,
        json={"jerseys": [JERSEY, {**JERSEY, "number": "11"}]},
    )
    assert response.status_code == 200, response.text
    assert response.json() == {"orderId": order["id"], "status": "submitted", "amount": 2}

    view = anonymous_client.get(_portal_url(order["id"]), params=params).json()
    assert view["canEdit"] is False
    assert view["showEntryForm"] is False
    assert view["displayQuantity"] == 2

    again = anonymous_client.post(_portal_url(order["id"], "/submit"), params=params, json={"jerseys": [JERSEY]})
    assert again.status_code == 409

    page = anonymous_client.get("/customer", params={"orderId": order["id"], "token": order["linkToken"]})
    assert 'id="entry"' not in page.text

    notifications = client.get("/notifications/").json()
    assert notifications["unread"] == 1


def test_invalid_submission_is_reported(anonymous_client, order):
    params = {"token": order["linkToken"]}

    empty = anonymous_client.post(_portal_url(order["id"], "/submit"), params=params, json={"jerseys": []})
    assert empty.status_code == 400
    assert empty.json()["detail"] == "Please add at least one jersey before submitting."

    bad_number = anonymous_client.post(
        _portal_url(order["id"], "/submit"),
        params=params,
        json={"jerseys": [{**JERSEY, "number": "ten"}]},
    )
    assert bad_number.status_code == 400
    assert bad_number.json()["detail"] == "Jersey number must contain numbers only"


def test_customer_edit_and_delete_saved_jerseys(client, anonymous_client, order):
    params = {"token": order["linkToken"]}
    first = client.post(f"/orders/{order['id']}/jerseys", json=JERSEY).json()
    client.post(f"/orders/{order['id']}/jerseys", json={**JERSEY, "number": "11"})

    edited = anonymous_client.put(
        _portal_url(order["id"], f"/jerseys/{first['id']}"),
        params=params,
        json={**JERSEY, "name": "REYES"},
    )
    assert edited.status_code == 200
    assert edited.json()["name"] == "REYES"

    views = []
    for jersey in client.get(f"/orders/{order['id']}/jerseys").json():
        views.append(anonymous_client.delete(_portal_url(order["id"], f"/jerseys/{jersey['id']}"), params=params).json())

    assert views == [
        {"remaining": 1, "showEntryForm": False},
        {"remaining": 0, "showEntryForm": True},
    ]
    # customer edits keep the admin-set status
    assert client.get(f"/orders/{order['id']}").json()["status"] == "draft"
