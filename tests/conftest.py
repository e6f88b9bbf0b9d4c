import os
from dataclasses import dataclass

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_SSL", "false")
os.environ.setdefault("SMTP_HOST", "")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import clinic.models  # noqa: E402,F401
from clinic.models.specialization import DoctorSpecialization, Specialization  # noqa: E402
from clinic.models.user import User  # noqa: E402


@dataclass
class ClinicData:
    doctor_id: int
    patient_id: int
    other_patient_id: int
    cardiology_id: int
    dermatology_id: int


@pytest.fixture
async def engine(tmp_path):
    # file-backed so that concurrent sessions get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def clinic_data(session_maker) -> ClinicData:
    """A doctor linked to cardiology only, two patients, two specializations."""
    async with session_maker() as session:
        doctor = User(email="doctor@example.com", full_name="Dr. House", role="doctor")
        patient = User(email="patient@example.com", full_name="Pat Smith", role="patient")
        other = User(email="other@example.com", full_name=None, role="patient")
        cardiology = Specialization(name="Cardiology")
        dermatology = Specialization(name="Dermatology")
        session.add_all([doctor, patient, other, cardiology, dermatology])
        await session.flush()
        session.add(DoctorSpecialization(doctor_id=doctor.id, specialization_id=cardiology.id))
        await session.commit()
        return ClinicData(
            doctor_id=doctor.id,
            patient_id=patient.id,
            other_patient_id=other.id,
            cardiology_id=cardiology.id,
            dermatology_id=dermatology.id,
        )
