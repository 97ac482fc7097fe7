#!/usr/bin/env python3
"""
Kanban Sync — Sample Board Seeder
Fills one organisation's board with realistic tasks for development and demos.
Writes through the same actions the API uses, so ordering and tenancy rules hold.

Usage:
    kanban-seed --org org_demo
    kanban-seed --org org_demo --projects 3 --tasks 20 --pro --seed 7
"""

import argparse
import asyncio
import random
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

import project_actions
import task_actions
from auth import ActingUser
from models import DEFAULT_PROJECT_NAME, TaskStatus
from queries import get_or_create_first_project

# ── Configuration ───────────────────────────────────────────

PROJECT_NAMES = ["Website Relaunch", "Mobile App", "Billing Migration", "Onboarding Flow", "Q3 Roadmap"]
TASK_VERBS = ["Draft", "Review", "Ship", "Refactor", "Document", "Test", "Design", "Migrate"]
TASK_SUBJECTS = [
    "pricing page", "login form", "invoice export", "search index", "email templates",
    "settings screen", "API rate limits", "release notes", "error pages", "audit trail",
]
FIRST_NAMES = ["Alex", "Jordan", "Taylor", "Morgan", "Casey", "Riley", "Quinn", "Avery"]
LAST_NAMES = ["Chen", "Patel", "Kim", "Santos", "Okafor", "Tanaka", "Silva", "Nguyen"]
STATUS_WEIGHTS = {TaskStatus.PLANNED: 5, TaskStatus.IN_PROGRESS: 3, TaskStatus.DONE: 2}


class BoardSeeder:
    """Deterministic sample board for one organisation"""

    def __init__(self, db: AsyncSession, org_id: str, seed: int = 42):
        self.db = db
        self.org_id = org_id
        self.rng = random.Random(seed)

    def _member(self, index: int) -> ActingUser:
        first = self.rng.choice(FIRST_NAMES)
        last = self.rng.choice(LAST_NAMES)
        return ActingUser(
            id=f"user_seed_{index:03d}",
            email=f"{first.lower()}.{last.lower()}{index}@example.com",
            first_name=first,
            last_name=last,
        )

    def _title(self) -> str:
        return f"{self.rng.choice(TASK_VERBS)} {self.rng.choice(TASK_SUBJECTS)}"

    def _status(self) -> TaskStatus:
        statuses = list(STATUS_WEIGHTS)
        return self.rng.choices(statuses, weights=[STATUS_WEIGHTS[s] for s in statuses])[0]

    async def _projects(self, count: int, has_pro: bool) -> List[str]:
        first = await get_or_create_first_project(self.db, self.org_id)
        await self.db.commit()
        project_ids = [first.id]
        for name in PROJECT_NAMES[: max(count - 1, 0)]:
            result = await project_actions.create_project(self.db, self.org_id, name, has_pro=has_pro)
            if not result.success:
                print(f"⚠️  Skipped project '{name}': {result.error}")
                break
            project_ids.append(result.data.id)
        return project_ids

    async def seed(
        self, projects: int = 1, tasks_per_project: int = 12, members: int = 4, has_pro: bool = False,
    ) -> Dict[str, int]:
        project_ids = await self._projects(projects, has_pro)
        team = [self._member(i) for i in range(max(members, 1))]

        counts = {status.value: 0 for status in TaskStatus}
        for project_id in project_ids:
            for _ in range(tasks_per_project):
                status = self._status()
                result = await task_actions.create_task(
                    self.db,
                    self.org_id,
                    self._title(),
                    project_id=project_id,
                    status=status,
                    actor=self.rng.choice(team),
                )
                if result.success:
                    counts[status.value] += 1

        return {"projects": len(project_ids), **counts}


async def seed_board(
    org_id: str,
    projects: int = 1,
    tasks_per_project: int = 12,
    members: int = 4,
    has_pro: bool = False,
    seed: int = 42,
    db: Optional[AsyncSession] = None,
) -> Dict[str, int]:
    if db is not None:
        return await BoardSeeder(db, org_id, seed).seed(projects, tasks_per_project, members, has_pro)

    from database import get_db_context, init_db

    await init_db()
    async with get_db_context() as session:
        return await BoardSeeder(session, org_id, seed).seed(projects, tasks_per_project, members, has_pro)


# ── CLI ─────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Kanban Sync Sample Board Seeder")
    parser.add_argument("--org", type=str, required=True, help="Organisation id to seed")
    parser.add_argument("--projects", type=int, default=1, help=f"Projects, including '{DEFAULT_PROJECT_NAME}'")
    parser.add_argument("--tasks", type=int, default=12, help="Tasks per project")
    parser.add_argument("--members", type=int, default=4, help="Distinct assignees")
    parser.add_argument("--pro", action="store_true", help="Seed as a pro-plan organisation")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    counts = asyncio.run(seed_board(
        args.org,
        projects=args.projects,
        tasks_per_project=args.tasks,
        members=args.members,
        has_pro=args.pro,
        seed=args.seed,
    ))

    print(f"✅ Board seeded for {args.org}")
    print(f"   Projects: {counts['projects']}")
    for status in TaskStatus:
        print(f"   {status.value}: {counts[status.value]}")


if __name__ == "__main__":
    main()
