"""Integration test fixtures backed by an in-memory SQLite database."""

from collections.abc import AsyncGenerator
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from staffma_payroll.api.app import create_app
from staffma_payroll.api.dependencies import get_db_session
from staffma_payroll.models import (
    Base,
    Business,
    Employee,
    IndividualDeductionRow,
    PayrollSettings,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BUSINESS_ID = UUID("5b1c6a0e-3f2d-4c8e-9a71-0d2e4f6a8b10")
ALICE_ID = UUID("a11ce000-0000-4000-8000-000000000001")
BRIAN_ID = UUID("b0b00000-0000-4000-8000-000000000002")
ADVANCE_ID = UUID("ad000000-0000-4000-8000-000000000003")

# Fixed "today" for period validation
TODAY = date(2024, 12, 31)


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh schema per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def business(db_session: AsyncSession) -> Business:
    """A Kenyan business registered in January 2023 with a 15% housing allowance."""
    business = Business(
        business_id=BUSINESS_ID,
        name="Acme Logistics",
        region="Kenya",
        business_type="Small Business",
        created_at=datetime(2023, 1, 10, tzinfo=timezone.utc),
    )
    settings = PayrollSettings(
        business_id=BUSINESS_ID,
        currency="KES",
        allowances=[{"name": "Housing", "type": "percentage", "value": "15", "enabled": True}],
        custom_deductions=[],
        tax_brackets=[],
        tax_region="",
        tax_business_type="",
        tax_source="",
    )
    db_session.add_all([business, settings])
    await db_session.commit()
    return business


@pytest_asyncio.fixture
async def employees(db_session: AsyncSession, business: Business) -> list[Employee]:
    """Alice on 50,000 with a salary advance, Brian on 30,000."""
    created = datetime(2023, 2, 1, tzinfo=timezone.utc)
    alice = Employee(
        employee_id=ALICE_ID,
        business_id=business.business_id,
        first_name="Alice",
        last_name="Wanjiku",
        position="Accountant",
        basic_salary=Decimal("50000"),
        created_at=created,
    )
    brian = Employee(
        employee_id=BRIAN_ID,
        business_id=business.business_id,
        first_name="Brian",
        last_name="Otieno",
        position="Driver",
        basic_salary=Decimal("30000"),
        created_at=created,
    )
    db_session.add_all([alice, brian])
    await db_session.commit()
    return [alice, brian]


@pytest_asyncio.fixture
async def salary_advance(db_session: AsyncSession, employees: list[Employee]) -> IndividualDeductionRow:
    """10,000 advance for Alice repaid at 2,000 a month from March 2024."""
    row = IndividualDeductionRow(
        deduction_id=ADVANCE_ID,
        employee_id=ALICE_ID,
        description="Salary advance",
        deduction_type="advance",
        amount=Decimal("10000"),
        monthly_amount=Decimal("2000"),
        remaining_amount=Decimal("10000"),
        start_date=date(2024, 3, 1),
        status="active",
        created_at=datetime(2024, 2, 20, tzinfo=timezone.utc),
    )
    db_session.add(row)
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests share the test session."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
