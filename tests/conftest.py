"""
conftest.py — Shared pytest fixtures for the HVAC service API test suite.

The app runs against an in-memory SQLite database.  ``get_db`` is overridden
to hand every request the test's own session, and ``get_current_user`` is
overridden to return whichever seeded user the test has logged in as, so no
Firebase token is ever verified.
"""

import os

# Must be set before any hvac_service import reads the configuration.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("BUSINESS_TIMEZONE", "Asia/Jakarta")

from datetime import date
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from hvac_service.auth import get_current_user
from hvac_service.database import Base, SessionLocal, engine, get_db
from hvac_service.main import app
from hvac_service.models import (
    Client,
    ServiceOrder,
    Technician,
    Tenant,
    User,
    UserTenantRole,
    WorkOrderAssignment,
)


# ---------------------------------------------------------------------------
# Database session
# ---------------------------------------------------------------------------

@pytest.fixture
def db():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@pytest.fixture
def auth():
    """Holder for the id of the user the API client acts as."""
    state = SimpleNamespace(user_id=None)

    def login(user):
        state.user_id = user.id

    state.login = login
    return state


@pytest.fixture
def client(db, auth):
    """TestClient with database and Firebase auth dependencies overridden."""

    def _get_db():
        yield db

    def _current_user():
        user = db.get(User, auth.user_id) if auth.user_id else None
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return user

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = _current_user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

def _member(db, tenant, email, name, role):
    user = User(firebase_uid=f"uid-{email}", email=email, full_name=name, active_tenant_id=tenant.id)
    db.add(user)
    db.flush()
    db.add(UserTenantRole(user_id=user.id, tenant_id=tenant.id, role=role))
    return user


@pytest.fixture
def seed(db, auth):
    """
    One tenant with:
      owner        — role owner (logged in by default)
      tech_user    — role technician, linked to technician ``tech``
      helper_user  — role helper, linked to technician ``helper``
      customer     — a household client in Bandung
    """
    tenant = Tenant(
        slug="djawara-cool",
        name="Djawara Cool",
        contact_email="admin@djawara.test",
        contact_phone="+6281234567890",
    )
    db.add(tenant)
    db.flush()

    owner = _member(db, tenant, "owner@djawara.test", "Owner Satu", "owner")
    tech_user = _member(db, tenant, "budi@djawara.test", "Budi Teknisi", "technician")
    helper_user = _member(db, tenant, "andi@djawara.test", "Andi Helper", "helper")

    tech = Technician(tenant_id=tenant.id, user_id=tech_user.id, full_name="Budi Teknisi", phone="+628111")
    helper = Technician(tenant_id=tenant.id, user_id=helper_user.id, full_name="Andi Helper")
    customer = Client(
        tenant_id=tenant.id,
        name="Ibu Sari",
        phone="+6281399990000",
        address="Jl. Dago 10",
        city="Bandung",
    )
    db.add_all([tech, helper, customer])
    db.commit()

    auth.login(owner)
    return SimpleNamespace(
        tenant=tenant,
        owner=owner,
        tech_user=tech_user,
        helper_user=helper_user,
        tech=tech,
        helper=helper,
        customer=customer,
    )


@pytest.fixture
def make_order(db, seed):
    """Factory inserting an order assigned to the seeded technicians."""
    counter = {"n": 0}

    def _make(status="scheduled", technicians=None, scheduled_date=date(2026, 3, 10), **fields):
        counter["n"] += 1
        order = ServiceOrder(
            tenant_id=seed.tenant.id,
            client_id=seed.customer.id,
            order_number=f"ORD-202603-{counter['n']:04d}",
            order_type=fields.pop("order_type", "repair"),
            status=status,
            service_title=fields.pop("service_title", "AC tidak dingin"),
            location_address=fields.pop("location_address", "Jl. Dago 10"),
            scheduled_date=scheduled_date,
            **fields,
        )
        technicians = [seed.tech] if technicians is None else technicians
        for index, technician in enumerate(technicians):
            order.assignments.append(
                WorkOrderAssignment(
                    technician_id=technician.id, role_in_order="lead" if index == 0 else "helper"
                )
            )
        db.add(order)
        db.commit()
        return order

    return _make


# ---------------------------------------------------------------------------
# Job queue
# ---------------------------------------------------------------------------

class FakeArqPool:
    """In-memory stand-in for the arq Redis pool used by the jobs routes."""

    def __init__(self):
        self.jobs = {}
        self.closed = 0

    def add(self, job_id, status, kwargs=None, result=None):
        self.jobs[job_id] = SimpleNamespace(status=status, kwargs=kwargs or {}, result=result)

    async def enqueue_job(self, function, *args, **kwargs):
        from arq.jobs import JobStatus

        job_id = f"job-{len(self.jobs) + 1}"
        self.add(job_id, JobStatus.queued, kwargs=kwargs)
        self.jobs[job_id].function = function
        return SimpleNamespace(job_id=job_id)

    async def close(self):
        self.closed += 1


class FakeArqJob:
    def __init__(self, job_id, pool):
        self.job_id = job_id
        self.pool = pool

    async def status(self):
        from arq.jobs import JobStatus

        job = self.pool.jobs.get(self.job_id)
        return job.status if job else JobStatus.not_found

    async def info(self):
        job = self.pool.jobs.get(self.job_id)
        return SimpleNamespace(kwargs=job.kwargs) if job else None

    async def result(self):
        result = self.pool.jobs[self.job_id].result
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def arq_pool(monkeypatch):
    """Route the jobs endpoints to an in-memory queue."""
    from hvac_service.routes import jobs

    pool = FakeArqPool()

    async def _create_pool(settings):
        return pool

    monkeypatch.setattr(jobs, "create_pool", _create_pool)
    monkeypatch.setattr(jobs, "Job", FakeArqJob)
    return pool
