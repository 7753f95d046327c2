from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from scm_api.core.pagination import PaginationParams
from scm_api.db.base import Base, build_engine, build_session_factory, get_db
from scm_api.domain.directory import Project, Supplier, User
from scm_api.main import app
from scm_api.schemas.claim import ClaimCreate
from scm_api.services.claim import ClaimService
from scm_api.workflow.states import Actor, ClaimArea, DemandType, Role

ACME_ID = 1
OTHER_SUPPLIER_ID = 2
PROJECT_ID = 1
ACME_EMAIL = "claims@acme.example"
ENGINEER_EMAIL = "engineer@scm.example"


class RecordingNotifier:
    """Notifier double that keeps everything submitted to it."""

    def __init__(self) -> None:
        self.sent = []

    def submit(self, notification) -> None:
        self.sent.append(notification)


class FailingNotifier:
    def submit(self, notification) -> None:
        raise RuntimeError("mail relay unavailable")


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def seeded(session_factory) -> None:
    async with session_factory() as session:
        session.add_all(
            [
                Supplier(id=ACME_ID, company_name="Acme Metals AS", email_1=ACME_EMAIL),
                Supplier(id=OTHER_SUPPLIER_ID, company_name="Nordic Steel AB"),
                Project(id=PROJECT_ID, project_number="P-1001", project_name="Harbour Crane"),
            ]
        )
        session.add_all(
            [
                User(id=1, username="pia", name="Pia Purchasing", email="pia@scm.example", role="purchasing"),
                User(id=2, username="ola", name="Ola Operations", email="ola@scm.example", role="operations"),
                User(id=3, username="lea", name="Lea Legal", email="lea@scm.example", role="legal"),
                User(id=4, username="acme", name="Acme Contact", email=ACME_EMAIL, role="supplier", company_id=ACME_ID),
                User(id=5, username="nordic", name="Nordic Contact", email="x@nordic.example", role="supplier", company_id=OTHER_SUPPLIER_ID),
                User(id=6, username="eli", name="Eli Engineer", email=ENGINEER_EMAIL, role="engineer"),
            ]
        )
        await session.commit()


@pytest_asyncio.fixture
async def session(session_factory, seeded):
    async with session_factory() as session:
        yield session


@pytest.fixture
def actors() -> SimpleNamespace:
    return SimpleNamespace(
        purchasing=Actor(id=1, role=Role.PURCHASING),
        operations=Actor(id=2, role=Role.OPERATIONS),
        legal=Actor(id=3, role=Role.LEGAL),
        supplier=Actor(id=4, role=Role.SUPPLIER, company_id=ACME_ID),
        other_supplier=Actor(id=5, role=Role.SUPPLIER, company_id=OTHER_SUPPLIER_ID),
        engineer=Actor(id=6, role=Role.ENGINEER),
        accounting=Actor(id=7, role=Role.ACCOUNTING),
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


def first_page(limit: int = 20) -> PaginationParams:
    return PaginationParams(page=1, limit=limit, sort="id", order="desc")


def claim_payload(**overrides) -> ClaimCreate:
    fields = {
        "supplier_id": ACME_ID,
        "project_id": PROJECT_ID,
        "order_number": "PO-4711",
        "claim_area": ClaimArea.MATERIAL,
        "claim_info": "Cracked welds on crane boom sections",
        "damage_text": "Two boom sections had to be re-welded on site",
        "damage_amount": Decimal("1500.00"),
        "demand_type": DemandType.COMPENSATION,
    }
    fields.update(overrides)
    return ClaimCreate(**fields)


@pytest.fixture
def make_claim(session, notifier, clock, actors):
    async def _make(**overrides):
        service = ClaimService(session, notifier, clock)
        return await service.create_claim(claim_payload(**overrides), actors.purchasing)

    return _make


def headers_for(actor: Actor) -> dict[str, str]:
    headers = {"X-User-Id": str(actor.id), "X-User-Role": actor.role.value}
    if actor.company_id is not None:
        headers["X-Company-Id"] = str(actor.company_id)
    return headers


@pytest_asyncio.fixture
async def client(session_factory, seeded, notifier):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.state.notifier = notifier
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
