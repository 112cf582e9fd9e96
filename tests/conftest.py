"""
HRMS Payroll - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, get_async_session
from app.models.employee import Employee
from app.models.payroll import (
    AdvanceStatus,
    AdvanceType,
    CalculationType,
    ComponentKind,
    PayComponent,
    SalaryAdvance,
)
from app.models.tax import MinimumTaxLimit, TaxSlab
from main import app


# In-memory SQLite shared by every connection of the test engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(db_session: AsyncSession):
    """Open further sessions on the test database, as concurrent requests would."""
    return TestSessionLocal


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

async def make_employee(
    db_session: AsyncSession,
    staff_number: str,
    base_salary: Decimal,
    is_active: bool = True,
) -> Employee:
    employee = Employee(
        id=uuid4(),
        staff_number=staff_number,
        full_name=f"Staff {staff_number}",
        email=f"{staff_number.lower()}@example.com",
        base_salary=base_salary,
        is_active=is_active,
    )
    db_session.add(employee)
    await db_session.commit()
    await db_session.refresh(employee)
    return employee


async def make_component(
    db_session: AsyncSession,
    employee_id,
    kind: ComponentKind,
    label: str,
    amount: Decimal,
    calculation_type: CalculationType = CalculationType.FIXED,
    effective_from=None,
    effective_until=None,
) -> PayComponent:
    component = PayComponent(
        employee_id=employee_id,
        kind=kind,
        label=label,
        calculation_type=calculation_type,
        amount=amount,
        effective_from=effective_from,
        effective_until=effective_until,
    )
    db_session.add(component)
    await db_session.commit()
    await db_session.refresh(component)
    return component


async def make_advance(
    db_session: AsyncSession,
    employee_id,
    principal_amount: Decimal,
    monthly_deduction: Decimal,
    start_deduction_date: date = date(2025, 1, 1),
) -> SalaryAdvance:
    advance = SalaryAdvance(
        employee_id=employee_id,
        advance_type=AdvanceType.SALARY_ADVANCE,
        description="Salary advance",
        principal_amount=principal_amount,
        monthly_deduction=monthly_deduction,
        remaining_balance=principal_amount,
        issue_date=start_deduction_date,
        start_deduction_date=start_deduction_date,
        expected_completion_date=start_deduction_date,
        status=AdvanceStatus.ACTIVE,
    )
    db_session.add(advance)
    await db_session.commit()
    await db_session.refresh(advance)
    return advance


@pytest.fixture
def employee_factory(db_session: AsyncSession):
    """Create employees: await employee_factory("EMP-002", Decimal("40000"))."""
    async def factory(staff_number: str, base_salary: Decimal, is_active: bool = True) -> Employee:
        return await make_employee(db_session, staff_number, base_salary, is_active)
    return factory


@pytest.fixture
def component_factory(db_session: AsyncSession):
    """Create pay components for an employee."""
    async def factory(employee_id, kind: ComponentKind, label: str, amount: Decimal, **kwargs) -> PayComponent:
        return await make_component(db_session, employee_id, kind, label, amount, **kwargs)
    return factory


@pytest.fixture
def advance_factory(db_session: AsyncSession):
    """Create active salary advances for an employee."""
    async def factory(employee_id, principal_amount: Decimal, monthly_deduction: Decimal, **kwargs) -> SalaryAdvance:
        return await make_advance(db_session, employee_id, principal_amount, monthly_deduction, **kwargs)
    return factory


@pytest_asyncio.fixture
async def test_employee(db_session: AsyncSession) -> Employee:
    """Employee on a 50,000 monthly basic salary."""
    return await make_employee(db_session, "EMP-001", Decimal("50000.00"))


@pytest_asyncio.fixture
async def test_slabs(db_session: AsyncSession):
    """Two contiguous slabs: 0-100,000 at 0% and 100,000.01-500,000 at 10% over 5,000."""
    slabs = [
        TaxSlab(
            title="Band A",
            income_from=Decimal("0.00"),
            income_to=Decimal("100000.00"),
            fixed_amount=Decimal("0.00"),
            percentage=Decimal("0.00"),
        ),
        TaxSlab(
            title="Band B",
            income_from=Decimal("100000.01"),
            income_to=Decimal("500000.00"),
            fixed_amount=Decimal("5000.00"),
            percentage=Decimal("10.00"),
        ),
    ]
    db_session.add_all(slabs)
    await db_session.commit()
    for slab in slabs:
        await db_session.refresh(slab)
    return slabs


@pytest_asyncio.fixture
async def test_minimum_limit(db_session: AsyncSession) -> MinimumTaxLimit:
    """Gross earnings up to 60,000 are not taxed."""
    limit = MinimumTaxLimit(
        title="Minimum taxable earnings",
        threshold_amount=Decimal("60000.00"),
    )
    db_session.add(limit)
    await db_session.commit()
    await db_session.refresh(limit)
    return limit
