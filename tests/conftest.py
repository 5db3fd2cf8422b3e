"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wacrm.db.base import Base
from wacrm.db.repositories import ConversationRepository, MessageRepository
from wacrm.models import Conversation, WhatsAppNumber
from wacrm.models.conversation import ConversationStatus
from wacrm.models.whatsapp_number import NumberStatus

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PHONE_NUMBER_ID = "106540352242922"
CONTACT_WA_ID = "6281111222333"


def epoch(dt: datetime) -> int:
    return int(dt.timestamp())


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    session_maker = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def account_id() -> UUID:
    return uuid4()


@pytest.fixture
def conversation_repo(db_session) -> ConversationRepository:
    return ConversationRepository(db_session)


@pytest.fixture
def message_repo(db_session) -> MessageRepository:
    return MessageRepository(db_session)


@pytest.fixture
async def approved_number(db_session: AsyncSession, account_id: UUID) -> WhatsAppNumber:
    """An approved business number receiving webhooks as PHONE_NUMBER_ID."""
    number = WhatsAppNumber(
        account_id=account_id,
        number="+15550001111",
        display_name="Acme Support",
        phone_number_id=PHONE_NUMBER_ID,
        status=NumberStatus.APPROVED.value,
    )
    db_session.add(number)
    await db_session.commit()
    await db_session.refresh(number)
    return number


@pytest.fixture
def make_conversation(db_session: AsyncSession, account_id: UUID) -> Callable:
    """Factory inserting a conversation with the given session start."""

    async def _make(
        session_start_at: datetime,
        *,
        contact_number: str = CONTACT_WA_ID,
        status: ConversationStatus = ConversationStatus.ACTIVE,
        last_message_at: datetime | None = None,
        whatsapp_number_id: UUID | None = None,
        owner: UUID | None = None,
    ) -> Conversation:
        conversation = Conversation(
            account_id=owner or account_id,
            contact_number=contact_number,
            whatsapp_number_id=whatsapp_number_id,
            session_start_at=session_start_at,
            last_message_at=last_message_at or session_start_at,
            status=status.value,
        )
        db_session.add(conversation)
        await db_session.commit()
        await db_session.refresh(conversation)
        return conversation

    return _make


@pytest.fixture
def mock_event_store():
    """Mock webhook event store for testing."""
    store = MagicMock()
    store.store_delivery = AsyncMock(return_value="event-1")
    store.update_status = AsyncMock()
    store.get_events = AsyncMock(return_value=([], 0))
    store.get_event = AsyncMock(return_value=None)
    store.clear_events = AsyncMock()
    return store


@pytest.fixture
def mock_rabbitmq_connection():
    """Mock RabbitMQ connection for testing."""
    connection = AsyncMock()
    channel = AsyncMock()
    connection.channel = AsyncMock(return_value=channel)
    channel.declare_queue = AsyncMock()
    channel.default_exchange = AsyncMock()
    channel.default_exchange.publish = AsyncMock()
    return connection


@pytest.fixture
def mock_dispatch():
    """Replace the RabbitMQ hand-off used by the send endpoint."""
    with patch("wacrm.api.deps.publish_outgoing_message", new_callable=AsyncMock) as dispatch:
        yield dispatch


@pytest.fixture
async def api_client(db_session, mock_event_store, account_id) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app, bound to the test database and account."""
    from wacrm.api.deps import get_webhook_event_store
    from wacrm.db.session import get_db
    from wacrm.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_webhook_event_store] = lambda: mock_event_store

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Account-Id": str(account_id)},
    ) as client:
        yield client

    app.dependency_overrides.clear()


def text_message(
    message_id: str,
    sent_at: datetime,
    body: str = "Hello",
    sender: str = CONTACT_WA_ID,
) -> dict[str, Any]:
    return {
        "from": sender,
        "id": message_id,
        "timestamp": str(epoch(sent_at)),
        "type": "text",
        "text": {"body": body},
    }


def status_update(message_id: str, status: str, at: datetime, **extra) -> dict[str, Any]:
    return {
        "id": message_id,
        "status": status,
        "timestamp": str(epoch(at)),
        "recipient_id": CONTACT_WA_ID,
        **extra,
    }


def webhook_payload(
    messages: list[dict[str, Any]] | None = None,
    statuses: list[dict[str, Any]] | None = None,
    contact_name: str | None = "Budi",
    phone_number_id: str = PHONE_NUMBER_ID,
) -> dict[str, Any]:
    """A Cloud API delivery with one entry and one ``messages`` change."""
    value: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": "15550001111",
            "phone_number_id": phone_number_id,
        },
    }
    if messages is not None:
        value["messages"] = messages
        if contact_name:
            value["contacts"] = [
                {"profile": {"name": contact_name}, "wa_id": messages[0]["from"]}
            ]
    if statuses is not None:
        value["statuses"] = statuses

    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA_ID",
                "changes": [{"field": "messages", "value": value}],
            }
        ],
    }


T0 = datetime(2024, 3, 20, 9, 15, tzinfo=timezone.utc)
