"""Seed the document and user directories from CSV files.

Usage:
    python -m ackflow.tools.seed_db --organization acme
    python -m ackflow.tools.seed_db --organization acme --data-dir data
    python -m ackflow.tools.seed_db --organization acme --drop  # drop existing data first
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ackflow.adapters.csv_loader.loader import load_documents, load_users
from ackflow.adapters.persistence.database import async_session_factory
from ackflow.adapters.persistence.models import (
    AssignmentModel,
    AuditChainHeadModel,
    AuditEventModel,
    DocumentModel,
    UserModel,
)
from ackflow.config import settings

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def _drop_data(session: AsyncSession, organization_id: str) -> None:
    """Delete one organization's data in FK-safe order."""
    for model in [
        AuditEventModel,
        AuditChainHeadModel,
        AssignmentModel,
        UserModel,
        DocumentModel,
    ]:
        await session.execute(delete(model).where(model.organization_id == organization_id))
    await session.commit()
    logger.info("Dropped existing data for organization %s", organization_id)


async def seed(data_dir: Path, organization_id: str, drop: bool = False) -> dict[str, int]:
    """Upsert documents and users. Returns counts of rows written."""
    counts = {"documents": 0, "users": 0}

    document_csv = _find_csv(data_dir, ["documents", "sops", "policies"])
    user_csv = _find_csv(data_dir, ["users", "employees", "staff"])
    if not document_csv and not user_csv:
        raise FileNotFoundError(
            f"No documents or users CSV found in {data_dir}. "
            "Expected something like documents.csv and users.csv"
        )

    async with async_session_factory() as session:
        if drop:
            await _drop_data(session, organization_id)

        if document_csv:
            for row in load_documents(document_csv, organization_id):
                await session.merge(DocumentModel(**row))
                counts["documents"] += 1
            await session.commit()

        if user_csv:
            rows = load_users(user_csv, organization_id)
            known = {row["id"] for row in rows}
            for row in rows:
                if row["manager_id"] and row["manager_id"] not in known:
                    logger.warning(
                        "User %s reports to unknown manager %s; escalations will be skipped",
                        row["id"], row["manager_id"],
                    )
                await session.merge(UserModel(**row))
                counts["users"] += 1
            await session.commit()

    logger.info(
        "Seed complete: %d documents, %d users", counts["documents"], counts["users"]
    )
    return counts


def _find_csv(data_dir: Path, name_hints: list[str]) -> Path | None:
    """Find a CSV file matching any of the name hints."""
    for f in sorted(data_dir.glob("*.csv")):
        stem = f.stem.lower()
        for hint in name_hints:
            if hint in stem:
                logger.info("Found CSV: %s (matched hint '%s')", f.name, hint)
                return f
    return None


async def _verify_data(organization_id: str) -> None:
    """Print sanity checks after seeding."""
    async with async_session_factory() as session:
        documents = (
            await session.execute(
                select(func.count(DocumentModel.id)).where(
                    DocumentModel.organization_id == organization_id
                )
            )
        ).scalar_one()
        users = (
            await session.execute(
                select(UserModel).where(UserModel.organization_id == organization_id)
            )
        ).scalars().all()

        departments: dict[str, int] = {}
        for u in users:
            key = u.department or "(none)"
            departments[key] = departments.get(key, 0) + 1
        without_manager = sum(1 for u in users if not u.manager_id)

        print(f"\n{'='*50}")
        print(f"SEED VERIFICATION ({organization_id})")
        print(f"{'='*50}")
        print(f"Documents: {documents}")
        print(f"Users:     {len(users)}")
        print(f"Users without a supervisor: {without_manager}")
        print(f"Department distribution: {departments}")
        print(f"{'='*50}\n")


def main():
    parser = argparse.ArgumentParser(description="Seed ackflow directories from CSV files")
    parser.add_argument(
        "--organization", required=True,
        help="Organization id the rows belong to",
    )
    parser.add_argument(
        "--data-dir", type=str, default=settings.csv_data_path,
        help="Directory containing CSV files (default: CSV_DATA_PATH)",
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop the organization's existing data before seeding",
    )
    parser.add_argument(
        "--verify-only", action="store_true",
        help="Only run verification, don't seed",
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not args.verify_only and not data_dir.exists():
        logger.error("Data directory not found: %s", data_dir)
        sys.exit(1)

    if args.verify_only:
        asyncio.run(_verify_data(args.organization))
    else:
        async def run_all():
            await seed(data_dir, args.organization, drop=args.drop)
            await _verify_data(args.organization)
        asyncio.run(run_all())


if __name__ == "__main__":
    main()
