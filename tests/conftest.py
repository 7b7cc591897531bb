import asyncio
import os
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./pos_unused.db"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENV_MODE"] = "development"
os.environ["REALTIME_REDIS_ENABLED"] = "false"

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from pos_backend.core.config import get_settings  # noqa: E402
from pos_backend.core.security import create_access_token, hash_password  # noqa: E402
from pos_backend.database import get_db, init_db  # noqa: E402
from pos_backend.main import app  # noqa: E402
from pos_backend.models import Product, ProductType, Table, User  # noqa: E402
from pos_backend.services.catalog import ensure_defaults  # noqa: E402
from pos_backend.services.realtime import (  # noqa: E402
    BaseBroadcaster,
    OutboxDispatcher,
    SessionRegistry,
    get_outbox_dispatcher,
)


class RecordingBroadcaster(BaseBroadcaster):
    """Keeps every published event instead of emitting it."""

    def __init__(self) -> None:
        self.broadcasts: list[tuple[str, dict]] = []
        self.sent: list[tuple[str, str, dict]] = []

    @property
    def provider_name(self) -> str:
        return "recording"

    async def broadcast(self, event: str, payload: dict[str, Any]) -> None:
        self.broadcasts.append((event, payload))

    async def send_to(self, session_id: str, event: str, payload: dict[str, Any]) -> None:
        self.sent.append((session_id, event, payload))

    def events(self) -> list[str]:
        return [event for event, _ in self.broadcasts]


@dataclass
class POSEnv:
    client: TestClient
    session_maker: async_sessionmaker
    broadcaster: RecordingBroadcaster
    registry: SessionRegistry
    dispatcher: OutboxDispatcher
    delivery_table_id: int
    _staff_token: Optional[str] = field(default=None)

    def run(self, fn: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        """Run ``fn(session)`` on a fresh session and return its result."""

        async def _go():
            async with self.session_maker() as session:
                return await fn(session)

        return asyncio.run(_go())

    def seed(self, *objects) -> list[int]:
        async def _seed(session: AsyncSession) -> list[int]:
            session.add_all(objects)
            await session.commit()
            return [obj.id for obj in objects]

        return self.run(_seed)

    def add_product(self, name: str = "Sencilla", price: float = 10.0,
                    type: ProductType = ProductType.HAMBURGUESA) -> int:
        return self.seed(Product(name=name, price=price, type=type, image="img.png"))[0]

    def add_table(self, name: str = "Mesa 1") -> int:
        return self.seed(Table(name=name))[0]

    def add_user(self, username: str = "admin", password: str = "secret") -> int:
        return self.seed(User(username=username, password_hash=hash_password(password)))[0]

    def staff_headers(self, expires_delta: Optional[timedelta] = None) -> dict[str, str]:
        token = create_access_token(1, "admin", expires_delta=expires_delta)
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def pos(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}", poolclass=NullPool)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    settings = get_settings()

    async def _init() -> None:
        await init_db(bind=engine)
        async with session_maker() as session:
            await ensure_defaults(session, settings)

    asyncio.run(_init())

    broadcaster = RecordingBroadcaster()
    registry = SessionRegistry()
    dispatcher = OutboxDispatcher(broadcaster, registry)

    async def _get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_outbox_dispatcher] = lambda: dispatcher

    yield POSEnv(
        client=TestClient(app),
        session_maker=session_maker,
        broadcaster=broadcaster,
        registry=registry,
        dispatcher=dispatcher,
        delivery_table_id=settings.delivery_table_id,
    )

    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())
