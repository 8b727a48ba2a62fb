import io
import pytest
from PIL import Image
from sqlmodel import select

from conftest import auth_headers, strong_pass, url_prefix
from storefront.auth.utils import create_access_token, create_reset_token, decode_token
from storefront.schema.full_schema import Cart, UserRole, Users


def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.mark.asyncio
async def test_register_creates_customer_with_cart(ac_client, session_maker):
    payload = {"email": "Chidi@ForgeBolt.io", "password": strong_pass, "name": "Chidi", "role": "admin"}
    resp = await ac_client.post(f"{url_prefix}/auth/register", json=payload)
    assert resp.status_code == 201, resp.text

    data = resp.json()["data"]
    assert data["user"]["email"] == "chidi@forgebolt.io"
    assert data["user"]["role"] == UserRole.CUSTOMER.value
    assert "password_hash" not in data["user"]

    claims = decode_token(data["access_token"])
    assert claims["email"] == "chidi@forgebolt.io"
    assert claims["role"] == "customer"
    assert claims["id"] == data["user"]["id"]

    async with session_maker() as session:
        carts = (await session.execute(select(Cart).where(Cart.user_id == data["user"]["id"]))).scalars().all()
    assert len(carts) == 1
    assert carts[0].grand_total == 0


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(ac_client, create_user):
    await create_user(email="ada@forgebolt.io")
    resp = await ac_client.post(f"{url_prefix}/auth/register",
                                json={"email": "ada@forgebolt.io", "password": strong_pass, "name": "Ada"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_register_rejects_weak_password(ac_client):
    resp = await ac_client.post(f"{url_prefix}/auth/register",
                                json={"email": "weak@forgebolt.io", "password": "password", "name": "Weak"})
    assert resp.status_code == 400
    assert resp.json()["status"] == "error"


@pytest.mark.asyncio
async def test_login_success_and_bad_password(ac_client, create_user):
    user = await create_user()

    ok = await ac_client.post(f"{url_prefix}/auth/login", json={"email": user.email, "password": strong_pass})
    assert ok.status_code == 200
    token = ok.json()["data"]["access_token"]
    assert decode_token(token)["sub"] == str(user.id)

    bad = await ac_client.post(f"{url_prefix}/auth/login", json={"email": user.email, "password": "Wrong!Pass1"})
    assert bad.status_code == 401
    assert bad.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_protected_route_requires_valid_bearer(ac_client):
    missing = await ac_client.get(f"{url_prefix}/cart")
    assert missing.status_code == 401

    garbage = await ac_client.get(f"{url_prefix}/cart", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401
    assert garbage.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_reset_token_is_not_an_access_token(ac_client, create_user):
    user = await create_user()
    resp = await ac_client.get(f"{url_prefix}/users/me", headers={"Authorization": f"Bearer {create_reset_token(user)}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_forgot_password_mails_only_known_accounts(ac_client, create_user, mailer):
    user = await create_user()

    resp = await ac_client.post(f"{url_prefix}/auth/forgot-password", json={"email": user.email})
    assert resp.status_code == 200
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == user.email
    assert "token=" in mailer.sent[0]["html"]

    unknown = await ac_client.post(f"{url_prefix}/auth/forgot-password", json={"email": "ghost@forgebolt.io"})
    assert unknown.status_code == 200
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_reset_password_flow(ac_client, create_user):
    user = await create_user()
    token = create_reset_token(user)

    resp = await ac_client.post(f"{url_prefix}/auth/reset-password", json={"token": token, "new_password": "N3w!Password"})
    assert resp.status_code == 200, resp.text

    login = await ac_client.post(f"{url_prefix}/auth/login", json={"email": user.email, "password": "N3w!Password"})
    assert login.status_code == 200

    old = await ac_client.post(f"{url_prefix}/auth/login", json={"email": user.email, "password": strong_pass})
    assert old.status_code == 401


@pytest.mark.asyncio
async def test_reset_password_rejects_access_token_and_garbage(ac_client, create_user):
    user = await create_user()
    for token in (create_access_token(user), "garbage"):
        resp = await ac_client.post(f"{url_prefix}/auth/reset-password", json={"token": token, "new_password": "N3w!Password"})
        assert resp.status_code == 400


@pytest.mark.asyncio
async def test_profile_read_and_update(ac_client, create_user):
    user = await create_user()
    other = await create_user(email="bola@forgebolt.io", name="Bola")
    headers = auth_headers(user)

    me = await ac_client.get(f"{url_prefix}/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["data"]["email"] == user.email

    renamed = await ac_client.put(f"{url_prefix}/users/me", json={"name": "Ada Lovelace"}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Ada Lovelace"

    clash = await ac_client.put(f"{url_prefix}/users/me", json={"email": other.email}, headers=headers)
    assert clash.status_code == 409


@pytest.mark.asyncio
async def test_profile_image_upload(ac_client, create_user, image_storage):
    user = await create_user()
    headers = auth_headers(user)

    resp = await ac_client.post(f"{url_prefix}/users/me/profile-image", headers=headers,
                                files={"file": ("avatar.png", png_bytes(), "image/png")})
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["profile_image_url"].startswith("https://res.cloudinary.test/users/")
    assert image_storage.uploads[0]["folder"] == f"users/{user.id}"

    not_image = await ac_client.post(f"{url_prefix}/users/me/profile-image", headers=headers,
                                     files={"file": ("avatar.png", b"definitely not a png", "image/png")})
    assert not_image.status_code == 400
    assert len(image_storage.uploads) == 1


@pytest.mark.asyncio
async def test_admin_user_listing(ac_client, create_user):
    customer = await create_user()
    admin = await create_user(email="admin@forgebolt.io", name="Admin", role=UserRole.ADMIN.value)

    forbidden = await ac_client.get(f"{url_prefix}/admin/users", headers=auth_headers(customer))
    assert forbidden.status_code == 403

    resp = await ac_client.get(f"{url_prefix}/admin/users", headers=auth_headers(admin))
    assert resp.status_code == 200
    items = resp.json()["data"]["items"]
    assert {u["email"] for u in items} == {customer.email, admin.email}
    assert all("password_hash" not in u for u in items)


@pytest.mark.asyncio
async def test_health_is_public(ac_client):
    resp = await ac_client.get(f"{url_prefix}/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"
    assert resp.headers.get("x-request-id")
