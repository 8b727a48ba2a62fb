from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    # session closes at the end of the with block; routes own the commit
    async with request.app.state.session_maker() as session:
        yield session


def get_mailer(request: Request):
    return request.app.state.mailer


def get_image_storage(request: Request):
    return request.app.state.image_storage


def get_payment_gateway(request: Request):
    return request.app.state.payment_gateway
