#!/usr/bin/env python3
"""
Database seed script for the work tracker.

Creates a demo account and sample records in every table for development.
Run from the backend directory: python -m scripts.seed_db
"""

import uuid
from datetime import datetime, timedelta, timezone

from worktracker.core.auth import get_password_hash
from worktracker.core.dates import today_key, utc_now_iso, week_start_key
from worktracker.database import Base, SessionLocal, engine, session_scope
from worktracker.models import entities, project, user as user_models  # noqa: F401 - import for table creation
from worktracker.schemas import records
from worktracker.services import persistence

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "demo1234"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def date_str(days: int = 0) -> str:
    """Return date string in YYYY-MM-DD format, shifted by ``days``."""
    return (utc_now() + timedelta(days=days)).strftime("%Y-%m-%d")


def shifted_iso(days: int = 0, hour: int = 9, minute: int = 0) -> str:
    """Return ISO string for a wall-clock time ``days`` from today."""
    moment = (utc_now() + timedelta(days=days)).replace(hour=hour, minute=minute, second=0, microsecond=0)
    return moment.isoformat()


def iso_ago(hours: int = 0, days: int = 0) -> str:
    return (utc_now() - timedelta(days=days, hours=hours)).isoformat()


def demo_engagements() -> list[records.Engagement]:
    return [
        records.Engagement(
            id="e-101",
            engagement_number="ENG-2024-001",
            org_id="ORG-TFS",
            account_name="TechFlow Systems",
            name="AI Implementation Strategy",
            status=records.EngagementStatus.ACTIVE,
            timeline=[
                records.TimelineEntry(
                    id="t-1",
                    date=shifted_iso(0, 14, 30),
                    content="Presented Phase 1 findings to the steering committee. Feedback was positive, approved to proceed to Phase 2.",
                    type="meeting",
                ),
                records.TimelineEntry(id="t-2", date=shifted_iso(-2, 10), content="Completed data readiness assessment.", type="milestone"),
                records.TimelineEntry(id="t-3", date=shifted_iso(-10, 9), content="Project Kickoff meeting.", type="update"),
            ],
            ai_summary="Engagement is progressing well. Phase 1 assessment is complete and Phase 2 has been approved by the steering committee.",
            last_summary_date=shifted_iso(0, 15),
        ),
        records.Engagement(
            id="e-102",
            engagement_number="ENG-2024-004",
            org_id="ORG-NSB",
            account_name="NorthStar Bank",
            name="Legacy System Upgrade",
            status=records.EngagementStatus.AT_RISK,
            timeline=[
                records.TimelineEntry(
                    id="t-4",
                    date=shifted_iso(-1, 9),
                    content="Critical Issue: Client firewall rules are blocking the deployment pipeline. Escalated to IT security.",
                    type="issue",
                ),
                records.TimelineEntry(id="t-5", date=shifted_iso(-5, 11), content="Deployment scheduled for next weekend.", type="update"),
            ],
            ai_summary="Project is currently At Risk due to firewall blocking issues preventing deployment.",
            last_summary_date=shifted_iso(-1, 10),
        ),
        records.Engagement(
            id="e-103",
            engagement_number="ENG-2023-089",
            org_id="ORG-GEC",
            account_name="GreenEnergy Corp",
            name="Sustainability Dashboard",
            status=records.EngagementStatus.COMPLETED,
            timeline=[
                records.TimelineEntry(id="t-6", date=shifted_iso(-20, 16), content="Final sign-off received.", type="milestone"),
                records.TimelineEntry(id="t-7", date=shifted_iso(-25, 10), content="UAT Completed successfully.", type="update"),
            ],
            ai_summary="Project successfully completed and signed off.",
            last_summary_date=shifted_iso(-20, 17),
        ),
    ]


def demo_tasks() -> list[records.Task]:
    today = today_key()
    week = week_start_key()
    return [
        records.Task(
            id="task-1",
            content="Review Q3 financial reports for TechFlow",
            date=today,
            is_priority=True,
            subtasks=[
                records.Subtask(id="st-1", content="Check variance analysis"),
                records.Subtask(id="st-2", content="Format summary slides"),
            ],
            engagement_id="e-101",
            engagement_name="AI Implementation Strategy",
        ),
        records.Task(
            id="task-2",
            content="Email update to NorthStar Bank regarding firewall issue",
            is_completed=True,
            date=today,
            created_at=iso_ago(hours=1),
            is_priority=True,
        ),
        records.Task(id="task-3", content="Weekly team sync preparation", date=today),
        records.Task(
            id="task-4",
            content="Complete AWS Cloud Practitioner certification course",
            type="weekly",
            date=week,
            is_priority=True,
        ),
        records.Task(
            id="task-5",
            content="Update internal knowledge base with new deployment protocols",
            type="weekly",
            date=week,
        ),
    ]


def demo_highlights() -> list[records.Highlight]:
    return [
        records.Highlight(
            id="h-1",
            content="Solved a complex caching latency issue on the TechFlow API, improving response times by 40%.",
            impact="Client CTO expressed appreciation directly.",
            date=date_str(0),
        ),
        records.Highlight(
            id="h-2",
            content="Led the sprint retrospective meeting effectively, identifying 3 key process improvements.",
            impact="Team morale boosted, clearer path for next sprint.",
            date=date_str(-2),
            needs_follow_up=True,
            follow_up_context="Schedule session to implement the new Jira workflow.",
            created_at=iso_ago(days=2),
        ),
        records.Highlight(
            id="h-3",
            content="Completed the GreenEnergy dashboard project ahead of schedule.",
            impact="Client signed up for a follow-up maintenance contract immediately.",
            date=date_str(-15),
            created_at=iso_ago(days=15),
        ),
    ]


def demo_projects() -> list[records.InternalProject]:
    return [
        records.InternalProject(
            id="p-1",
            name="Certification: AWS Solutions Architect",
            description="Study and pass the SAA-C03 exam to improve cloud architecture skills.",
            status=records.ProjectStatus.IN_PROGRESS,
            start_date=date_str(-10),
            due_date=date_str(20),
            tasks=[
                records.ProjectTask(id="pt-1", content="Complete Section 1-4 of video course", is_completed=True),
                records.ProjectTask(id="pt-2", content="Take practice exam 1"),
                records.ProjectTask(id="pt-3", content="Review whitepapers"),
            ],
            research_notes=[
                records.ResearchNote(id="rn-1", date=date_str(-2), content="S3 consistency model has changed. Read updated docs."),
                records.ResearchNote(id="rn-2", date=date_str(-5), content="Focus on VPC networking, got some questions wrong in quiz."),
            ],
        ),
        records.InternalProject(
            id="p-2",
            name="Internal Dev Tools Upgrade",
            description="Audit and upgrade the CLI tools used by the development team.",
            status=records.ProjectStatus.NOT_STARTED,
            start_date=date_str(5),
            due_date=date_str(30),
            tasks=[records.ProjectTask(id="pt-4", content="Survey team for pain points")],
        ),
    ]


def demo_ideas() -> list[records.Idea]:
    def idea(idea_id, title, description, category, priority, status):
        now = utc_now_iso()
        return records.Idea(
            id=idea_id,
            title=title,
            description=description,
            entries=[records.IdeaEntry(id=f"{idea_id}-entry-0", content=description, timestamp=now)],
            category=category,
            priority=priority,
            status=status,
            created_at=now,
            updated_at=now,
        )

    return [
        idea(
            "idea-1",
            "Automated Status Reporting Tool",
            "Build a script that pulls Jira data and formats it into a weekly email draft for clients.",
            "Process", "High", records.IdeaStatus.NEW,
        ),
        idea(
            "idea-2",
            'Friday "Lunch & Learn" Sessions',
            "Team members rotate presenting a new tech topic or hobby during lunch.",
            "Team", "Medium", records.IdeaStatus.PLANNED,
        ),
        idea(
            "idea-3",
            "Dark Mode for Admin Portal",
            "Add dark mode support to the internal admin portal used by support staff.",
            "Product", "Low", records.IdeaStatus.IN_PROGRESS,
        ),
    ]


def demo_events() -> list[records.CalendarEvent]:
    return [
        records.CalendarEvent(id="ce-1", title="Client Sync: TechFlow", date=date_str(0), start_time="10:00", end_time="11:00",
                              type="meeting", description="Weekly status update with Sarah and Mike."),
        records.CalendarEvent(id="ce-2", title="Focus Time: Reports", date=date_str(0), start_time="14:00", end_time="16:00",
                              type="work", description="Deep work on Q3 financial analysis."),
        records.CalendarEvent(id="ce-3", title="Team Standup", date=date_str(1), start_time="09:30", end_time="10:00",
                              type="meeting", description="Daily operational sync."),
        records.CalendarEvent(id="ce-4", title="Doctor Appointment", date=date_str(2), start_time="15:00", end_time="16:00",
                              type="personal", description="Annual checkup."),
    ]


def demo_links() -> list[records.UsefulLink]:
    return [
        records.UsefulLink(id="l-1", title="Company HR Portal", url="https://example.com/hr", category="Company",
                           description="Payroll, Benefits, and Time Off"),
        records.UsefulLink(id="l-2", title="Jira Dashboard", url="https://www.atlassian.com/software/jira", category="Tools",
                           description="Main project tracking board"),
        records.UsefulLink(id="l-3", title="AWS Console", url="https://aws.amazon.com/console/", category="Tools",
                           description="Production Environment"),
    ]


def demo_notes() -> list[records.Note]:
    return [
        records.Note(id="n-1", title="Steering committee prep", content="Bring Phase 2 budget and timeline.", tags=["techflow"]),
    ]


def seed_records(db, owner_id: str) -> None:
    """Write every demo record for ``owner_id`` into the session."""
    print("  Creating engagements...")
    for engagement in demo_engagements():
        persistence.upsert_row(db, entities.Engagement, owner_id, engagement)

    print("  Creating tasks...")
    for task in demo_tasks():
        persistence.upsert_row(db, entities.Task, owner_id, task)

    print("  Creating highlights...")
    for highlight in demo_highlights():
        persistence.upsert_row(db, entities.Highlight, owner_id, highlight)

    print("  Creating projects...")
    for internal_project in demo_projects():
        persistence.save_project(db, owner_id, internal_project)

    print("  Creating ideas...")
    for idea in demo_ideas():
        persistence.save_idea(db, owner_id, idea)

    print("  Creating calendar events, links and notes...")
    for event in demo_events():
        persistence.upsert_row(db, entities.CalendarEvent, owner_id, event)
    for link in demo_links():
        persistence.upsert_row(db, entities.UsefulLink, owner_id, link)
    for note in demo_notes():
        persistence.upsert_row(db, entities.Note, owner_id, note)


def seed_database():
    """Seed the database with the demo account and its records."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    try:
        with session_scope() as db:
            existing = db.query(user_models.User).filter(user_models.User.email == DEMO_EMAIL).first()
            if existing is not None:
                print(f"Demo user {DEMO_EMAIL} already exists. Skipping seed.")
                print("To re-seed, clear the database first.")
                return

            print("Seeding database with demo data...")
            print("  Creating demo user...")
            demo = user_models.User(
                id=str(uuid.uuid4()),
                email=DEMO_EMAIL,
                password_hash=get_password_hash(DEMO_PASSWORD),
                name="Demo User",
                created_at=utc_now_iso(),
            )
            db.add(demo)
            db.flush()
            seed_records(db, demo.id)
    except Exception as e:
        print(f"Error seeding database: {e}")
        raise

    print(f"Database seeded successfully! Log in as {DEMO_EMAIL} / {DEMO_PASSWORD}")


def clear_database():
    """Clear all data from the database (use with caution)."""
    print("Clearing database...")
    db = SessionLocal()
    try:
        # Delete in reverse order of dependencies
        db.query(project.ProjectTask).delete()
        db.query(project.ResearchNote).delete()
        db.query(project.InternalProject).delete()
        for model in (
            entities.Engagement,
            entities.Task,
            entities.Highlight,
            entities.Idea,
            entities.CalendarEvent,
            entities.UsefulLink,
            entities.Note,
            entities.Setting,
        ):
            db.query(model).delete()
        db.query(user_models.User).delete()
        db.commit()
        print("Database cleared successfully!")
    except Exception as e:
        print(f"Error clearing database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed or clear the work tracker database")
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear the database before seeding",
    )
    parser.add_argument(
        "--clear-only",
        action="store_true",
        help="Only clear the database, don't seed",
    )

    args = parser.parse_args()

    if args.clear_only:
        clear_database()
    elif args.clear:
        clear_database()
        seed_database()
    else:
        seed_database()
