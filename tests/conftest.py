import hashlib
import hmac
import json
from pathlib import Path
from typing import Optional

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlmodel import SQLModel

from storefront.auth.utils import create_access_token, hash_password
from storefront.config.settings import config_settings
from storefront.db.dependencies import get_image_storage, get_mailer, get_payment_gateway
from storefront.main import create_app
from storefront.schema.full_schema import Cart, Product, UserRole, Users

url_prefix = "/api/v1"
webhook_path = config_settings.PAYSTACK_WEBHOOK_PATH
strong_pass = "Str0ng!Pass"


class FakeMailer:
    def __init__(self):
        self.sent = []

    async def send(self, to: str, subject: str, html: str):
        self.sent.append({"to": to, "subject": subject, "html": html})


class FailingMailer:
    def __init__(self):
        self.attempts = 0

    async def send(self, to: str, subject: str, html: str):
        self.attempts += 1
        raise RuntimeError("mail api unavailable")


class FakeImageStorage:
    def __init__(self):
        self.uploads = []

    async def upload(self, path: Path, folder: str) -> str:
        assert path.exists()
        self.uploads.append({"folder": folder, "size": path.stat().st_size})
        return f"https://res.cloudinary.test/{folder}/{path.stem}.png"


class FakeGateway:
    def __init__(self):
        self.calls = []

    async def initialize_transaction(self, email, amount, reference, metadata, callback_url=None):
        self.calls.append({
            "email": email, "amount": amount, "reference": reference,
            "metadata": metadata, "callback_url": callback_url,
        })
        return {
            "authorization_url": f"https://checkout.paystack.test/{reference}",
            "access_code": "acc_test",
            "reference": reference,
        }

    async def aclose(self):
        pass


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def image_storage():
    return FakeImageStorage()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(tmp_path, mailer, image_storage, gateway):
    app = create_app(database_url=f"sqlite+aiosqlite:///{tmp_path / 'storefront_test.db'}")
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_image_storage] = lambda: image_storage
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    return app


@pytest.fixture
async def ac_client(app):
    async with LifespanManager(app):
        async with app.state.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


@pytest.fixture
def session_maker(app, ac_client):
    return app.state.session_maker


@pytest.fixture
def create_user(session_maker):
    async def _create(email: str = "ada@forgebolt.io", name: str = "Ada Obi",
                      role: str = UserRole.CUSTOMER.value, password: str = strong_pass) -> Users:
        async with session_maker() as session:
            user = Users(email=email, name=name, role=role, password_hash=hash_password(password))
            session.add(user)
            await session.flush()
            session.add(Cart(user_id=user.id))
            await session.commit()
            await session.refresh(user)
            return user
    return _create


@pytest.fixture
def create_product(session_maker):
    async def _create(name: str = "Claw Hammer", price: int = 1000, stock_count: int = 10,
                      category: Optional[str] = "tools", brand: Optional[str] = "Forge") -> Product:
        async with session_maker() as session:
            product = Product(name=name, price=price, stock_count=stock_count, category=category, brand=brand)
            session.add(product)
            await session.commit()
            await session.refresh(product)
            return product
    return _create


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def sign(body: bytes, secret: Optional[str] = None) -> str:
    key = secret if secret is not None else config_settings.PAYSTACK_SECRET_KEY
    return hmac.new(key.encode(), body, hashlib.sha512).hexdigest()


def charge_event(event: str, email: str, order_id, amount: int, reference: str = "ref_test_001", **data) -> bytes:
    payload = {
        "event": event,
        "data": {
            "reference": reference,
            "amount": amount,
            "currency": "NGN",
            "channel": "card",
            "status": "success" if event == "charge.success" else "failed",
            "paid_at": "2025-11-02T10:15:00.000Z" if event == "charge.success" else None,
            "customer": {"email": email},
            "metadata": {"order_id": order_id},
            **data,
        },
    }
    return json.dumps(payload).encode()


async def post_webhook(client: AsyncClient, body: bytes, signature: Optional[str] = None, **headers):
    hdrs = {"content-type": "application/json", "x-paystack-signature": signature if signature is not None else sign(body)}
    hdrs.update(headers)
    return await client.post(webhook_path, content=body, headers=hdrs)
