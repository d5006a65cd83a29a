"""
Seed Demo Data

Creates the tables and inserts one job opening plus one application per
partition, so the admin dashboard has something to show in development.
Production schemas are managed by Alembic; this script refuses to run there.

Usage:
    python scripts/seed_demo_data.py
"""

import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from careers.core.config import settings
from careers.core.database import Base
from careers.modules.applications.normalizer import normalize
from careers.modules.applications.partitions import Partition
from careers.modules.applications.repository import build_repositories
from careers.modules.openings.models import JobOpening


async def seed_demo_data() -> None:
    """Insert demo rows unless the job_openings table already has data."""
    if settings.is_production:
        print("Refusing to seed demo data in production")
        return

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    repositories = build_repositories()

    async with async_session() as db:
        existing = await db.execute(select(JobOpening.id).limit(1))
        if existing.scalar_one_or_none() is not None:
            print("Demo data already present, nothing to do")
            await engine.dispose()
            return

        opening = JobOpening(
            title="Backend Developer",
            description="Build and run the recruitment platform APIs.",
            category="CDI",
            location="Casablanca",
            requirements=["Python", "SQL"],
            expires_at=date.today() + timedelta(days=30),
        )
        db.add(opening)
        await db.commit()
        await db.refresh(opening)
        print(f"Opening created: {opening.title} (ID: {opening.id})")

        seeds = {
            Partition.JOB: {
                "first_name": "Amina",
                "last_name": "Benali",
                "email": "amina.benali@example.com",
                "phone": "+212600000001",
                "degree": "Master",
                "experience": 3,
                "skills": {"Python": 5, "SQL": 4, "Requirements": "3 years backend"},
                "position": "Backend Developer",
                "opening_id": opening.id,
            },
            Partition.INTERNSHIP: {
                "first_name": "Youssef",
                "last_name": "Alaoui",
                "email": "youssef.alaoui@example.com",
                "phone": "+212600000002",
                "degree": "Licence",
                "experience": 0,
                "skills": {"React": 3, "CSS": 4},
                "domain": "Web development",
                "duration": "3 months",
                "university": "ENSIAS",
            },
            Partition.SPONTANEOUS: {
                "first_name": "Sara",
                "last_name": "Idrissi",
                "email": "sara.idrissi@example.com",
                "phone": "+212600000003",
                "degree": "Ingénieur",
                "experience": 5,
                "skills": '{"DevOps": 4, "Kubernetes": 3}',
                "position": "Site Reliability Engineer",
            },
        }

        for partition, fields in seeds.items():
            repository = repositories[partition]
            record = await repository.create(db, **fields)
            application = normalize(record, repository.spec)
            print(
                f"{partition.value} application created: {application.applicant_name} "
                f"(source: {application.source.value}, score: {application.score})"
            )

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
