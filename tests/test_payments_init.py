import json
import httpx
import pytest

from conftest import auth_headers, url_prefix
from storefront.common.custom_exceptions import GatewayError
from storefront.db.dependencies import get_payment_gateway
from storefront.payments.gateway import PaystackClient, new_reference


async def pending_order(client, user, product) -> int:
    headers = auth_headers(user)
    await client.post(f"{url_prefix}/cart", json={"product_id": product.id, "quantity": 2}, headers=headers)
    resp = await client.post(f"{url_prefix}/orders", headers=headers)
    assert resp.status_code == 201
    return resp.json()["data"]["order_id"]


@pytest.mark.asyncio
async def test_initiate_payment_for_own_pending_order(ac_client, create_user, create_product, gateway):
    user = await create_user()
    product = await create_product(price=2500)
    order_id = await pending_order(ac_client, user, product)

    resp = await ac_client.post(f"{url_prefix}/payments/initiate", json={"order_id": order_id}, headers=auth_headers(user))
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["authorization_url"].startswith("https://checkout.paystack.test/")
    assert data["amount"] == 5000

    call = gateway.calls[0]
    assert call["email"] == user.email
    assert call["amount"] == 5000
    assert call["metadata"] == {"order_id": order_id}
    assert call["reference"] == data["reference"]
    assert call["reference"].startswith(f"ord{order_id}_")


@pytest.mark.asyncio
async def test_initiate_rejects_foreign_and_settled_orders(ac_client, create_user, create_product, gateway):
    owner = await create_user()
    other = await create_user(email="eze@forgebolt.io", name="Eze")
    admin = await create_user(email="admin@forgebolt.io", name="Admin", role="admin")
    product = await create_product()
    order_id = await pending_order(ac_client, owner, product)

    foreign = await ac_client.post(f"{url_prefix}/payments/initiate", json={"order_id": order_id}, headers=auth_headers(other))
    assert foreign.status_code == 404

    await ac_client.put(f"{url_prefix}/orders/{order_id}/status", json={"status": "paid"}, headers=auth_headers(admin))
    settled = await ac_client.post(f"{url_prefix}/payments/initiate", json={"order_id": order_id}, headers=auth_headers(owner))
    assert settled.status_code == 409
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_gateway_outage_maps_to_bad_gateway(app, ac_client, create_user, create_product):
    class DownGateway:
        async def initialize_transaction(self, **kwargs):
            raise GatewayError()

    app.dependency_overrides[get_payment_gateway] = lambda: DownGateway()
    user = await create_user()
    order_id = await pending_order(ac_client, user, await create_product())

    resp = await ac_client.post(f"{url_prefix}/payments/initiate", json={"order_id": order_id}, headers=auth_headers(user))
    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "GATEWAY_ERROR"


@pytest.mark.asyncio
async def test_paystack_client_initialize_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "status": True,
            "message": "Authorization URL created",
            "data": {"authorization_url": "https://checkout.paystack.com/xyz", "access_code": "xyz", "reference": "ref1"},
        })

    client = PaystackClient(secret_key="sk_test_abc", base_url="https://api.paystack.co",
                            transport=httpx.MockTransport(handler))
    try:
        data = await client.initialize_transaction(email="ada@forgebolt.io", amount=2500, reference="ref1",
                                                   metadata={"order_id": 7}, callback_url="https://shop.test/done")
    finally:
        await client.aclose()

    assert data["authorization_url"] == "https://checkout.paystack.com/xyz"
    assert seen["url"] == "https://api.paystack.co/transaction/initialize"
    assert seen["auth"] == "Bearer sk_test_abc"
    assert seen["body"] == {
        "email": "ada@forgebolt.io", "amount": 2500, "reference": "ref1",
        "metadata": {"order_id": 7}, "callback_url": "https://shop.test/done",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(401, json={"status": False, "message": "Invalid key"}),
    httpx.Response(200, json={"status": False, "message": "Duplicate Transaction Reference"}),
    httpx.Response(200, text="<html>maintenance</html>"),
])
async def test_paystack_client_errors_become_gateway_errors(response):
    client = PaystackClient(transport=httpx.MockTransport(lambda request: response))
    try:
        with pytest.raises(GatewayError):
            await client.initialize_transaction(email="ada@forgebolt.io", amount=100, reference="r", metadata={})
    finally:
        await client.aclose()


def test_references_are_unique_per_attempt():
    assert new_reference(5) != new_reference(5)
