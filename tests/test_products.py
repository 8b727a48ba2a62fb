import io
import pytest
from PIL import Image
from sqlmodel import select

from conftest import auth_headers, url_prefix
from storefront.image_uploads.utils import FileUpload
from storefront.products.repository import decrement_stock
from storefront.schema.full_schema import Cart, CartItem, OrderItem, Product, UserRole


@pytest.fixture
async def admin(create_user):
    return await create_user(email="admin@forgebolt.io", name="Admin", role=UserRole.ADMIN.value)


@pytest.mark.asyncio
async def test_listing_filters_and_pagination(ac_client, create_product):
    await create_product(name="Claw Hammer", price=1500, category="tools", brand="Forge")
    await create_product(name="Sledge Hammer", price=4500, category="tools", brand="Bolt")
    await create_product(name="Hex Bolts", price=300, category="fasteners", brand="Bolt")

    resp = await ac_client.get(f"{url_prefix}/products")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 3
    assert data["limit"] == 18
    assert data["total_pages"] == 1
    # newest first
    assert [p["name"] for p in data["items"]] == ["Hex Bolts", "Sledge Hammer", "Claw Hammer"]

    tools = (await ac_client.get(f"{url_prefix}/products", params={"category": "tools"})).json()["data"]
    assert {p["name"] for p in tools["items"]} == {"Claw Hammer", "Sledge Hammer"}

    bolt_cheap = (await ac_client.get(f"{url_prefix}/products", params={"brand": "Bolt", "max_price": 4000})).json()["data"]
    assert [p["name"] for p in bolt_cheap["items"]] == ["Hex Bolts"]

    page2 = (await ac_client.get(f"{url_prefix}/products", params={"limit": 2, "page": 2})).json()["data"]
    assert page2["total_pages"] == 2
    assert [p["name"] for p in page2["items"]] == ["Claw Hammer"]


@pytest.mark.asyncio
async def test_get_product_and_missing(ac_client, create_product):
    product = await create_product()
    ok = await ac_client.get(f"{url_prefix}/products/{product.id}")
    assert ok.status_code == 200
    assert ok.json()["data"]["stock_count"] == product.stock_count

    missing = await ac_client.get(f"{url_prefix}/products/999999")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_admin_create_and_update(ac_client, admin, create_user):
    customer = await create_user()
    body = {"name": "Torque Wrench", "price": 8900, "stock_count": 4, "category": "tools", "brand": "Forge"}

    forbidden = await ac_client.post(f"{url_prefix}/admin/products", json=body, headers=auth_headers(customer))
    assert forbidden.status_code == 403

    created = await ac_client.post(f"{url_prefix}/admin/products", json=body, headers=auth_headers(admin))
    assert created.status_code == 201, created.text
    product = created.json()["data"]
    assert product["price"] == 8900

    updated = await ac_client.put(f"{url_prefix}/admin/products/{product['id']}", json={"price": 9900},
                                  headers=auth_headers(admin))
    assert updated.status_code == 200
    assert updated.json()["data"]["price"] == 9900
    assert updated.json()["data"]["name"] == "Torque Wrench"

    negative = await ac_client.put(f"{url_prefix}/admin/products/{product['id']}", json={"stock_count": -1},
                                   headers=auth_headers(admin))
    assert negative.status_code == 422


@pytest.mark.asyncio
async def test_admin_delete_cascades_cart_and_order_items(ac_client, admin, create_user, create_product, session_maker):
    user = await create_user()
    doomed = await create_product(name="Recalled Drill", price=1000)
    kept = await create_product(name="Tape Measure", price=250)
    headers = auth_headers(user)

    await ac_client.post(f"{url_prefix}/cart", json={"product_id": doomed.id, "quantity": 2}, headers=headers)
    await ac_client.post(f"{url_prefix}/cart", json={"product_id": kept.id, "quantity": 1}, headers=headers)
    order = await ac_client.post(f"{url_prefix}/orders", headers=headers)
    assert order.status_code == 201

    resp = await ac_client.delete(f"{url_prefix}/admin/products/{doomed.id}", headers=auth_headers(admin))
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["carts_touched"] == 1
    assert resp.json()["data"]["order_items_removed"] == 1

    async with session_maker() as session:
        assert (await session.execute(select(Product).where(Product.id == doomed.id))).scalar_one_or_none() is None
        leftover_cart = (await session.execute(select(CartItem.product_id))).scalars().all()
        leftover_order = (await session.execute(select(OrderItem.product_id))).scalars().all()
        cart = (await session.execute(select(Cart).where(Cart.user_id == user.id))).scalar_one()
    assert leftover_cart == [kept.id]
    assert leftover_order == [kept.id]
    assert cart.grand_total == 250


@pytest.mark.asyncio
async def test_low_stock_listing(ac_client, admin, create_product):
    await create_product(name="Plenty", stock_count=50)
    await create_product(name="Nearly Gone", stock_count=2)
    await create_product(name="Sold Out", stock_count=0)

    resp = await ac_client.get(f"{url_prefix}/admin/products/low-stock", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert [p["name"] for p in resp.json()["data"]["items"]] == ["Sold Out", "Nearly Gone"]


@pytest.mark.asyncio
async def test_admin_product_image_upload(ac_client, admin, create_product, image_storage):
    product = await create_product()
    buf = io.BytesIO()
    Image.new("RGB", (4, 4)).save(buf, format="JPEG")

    resp = await ac_client.post(f"{url_prefix}/admin/products/{product.id}/image", headers=auth_headers(admin),
                                files={"file": ("hammer.jpg", buf.getvalue(), "image/jpeg")})
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["image_url"].startswith(f"https://res.cloudinary.test/products/{product.id}/")

    text = await ac_client.post(f"{url_prefix}/admin/products/{product.id}/image", headers=auth_headers(admin),
                                files={"file": ("notes.txt", b"hello", "text/plain")})
    assert text.status_code == 400
    assert len(image_storage.uploads) == 1


@pytest.mark.asyncio
async def test_oversized_image_upload_is_rejected(ac_client, admin, create_product, image_storage, monkeypatch):
    monkeypatch.setattr(FileUpload, "MAX_UPLOAD_SIZE", 1024)
    product = await create_product()
    buf = io.BytesIO()
    Image.effect_noise((64, 64), 64).convert("RGB").save(buf, format="PNG")
    assert len(buf.getvalue()) > 1024

    resp = await ac_client.post(f"{url_prefix}/admin/products/{product.id}/image", headers=auth_headers(admin),
                                files={"file": ("big.png", buf.getvalue(), "image/png")})
    assert resp.status_code == 413
    assert resp.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
    assert image_storage.uploads == []


@pytest.mark.asyncio
async def test_decrement_stock_never_goes_negative(ac_client, create_product, session_maker):
    product = await create_product(stock_count=3)

    async with session_maker() as session:
        assert await decrement_stock(session, product.id, 2) == 1
        assert await decrement_stock(session, product.id, 5) == 0
        assert await decrement_stock(session, 424242, 1) is None
        await session.commit()

    async with session_maker() as session:
        stock = (await session.execute(select(Product.stock_count).where(Product.id == product.id))).scalar_one()
    assert stock == 0
