"""
Flask CLI commands.

    flask create-super-admin --email admin@example.com --name "Admin"
    flask seed-demo [--reset]
"""

import logging
from datetime import date, timedelta

import click

from taskhub.models import db
from taskhub.models.audit import write_task_history
from taskhub.models.project import Project, ProjectMember
from taskhub.models.task import Comment, Task
from taskhub.services.user_service import build_user, get_user_by_email, normalize_email

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {"name": "John Doe", "email": "john@example.com", "role": "admin"},
    {"name": "Jane Smith", "email": "jane@example.com", "role": "user"},
    {"name": "Bob Wilson", "email": "bob@example.com", "role": "user"},
]

DEMO_PROJECTS = [
    {"name": "Website Redesign",
     "description": "Complete redesign of the company website with modern UI/UX", "owner": 0},
    {"name": "Mobile App Development",
     "description": "Develop iOS and Android mobile application", "owner": 1},
    {"name": "Marketing Campaign",
     "description": "Q4 marketing campaign planning and execution", "owner": 0},
]

# (project, user, role, can_edit, can_delete)
DEMO_MEMBERSHIPS = [
    (0, 1, "member", True, False),
    (0, 2, "viewer", False, False),
    (1, 0, "admin", True, True),
    (2, 1, "member", True, False),
]

# (project, title, description, status, priority, assignee, creator, due in days)
DEMO_TASKS = [
    (0, "Design Homepage Mockup", "Create wireframes and mockups for the new homepage design",
     "doing", "high", 1, 0, 3),
    (0, "Set up Development Environment", "Configure local development environment with required tools",
     "done", "medium", 2, 0, -2),
    (0, "Content Audit", "Review and audit all existing website content",
     "todo", "low", 1, 0, 7),
    (1, "Define App Requirements", "Document functional and non-functional requirements",
     "done", "high", 1, 1, -5),
    (1, "UI/UX Design", "Create user interface designs and user experience flow",
     "doing", "high", 0, 1, 5),
    (1, "Set up CI/CD Pipeline", "Configure continuous integration and deployment",
     "todo", "medium", 0, 1, 14),
    (2, "Market Research", "Conduct research on target audience and competitors",
     "done", "high", 1, 0, -1),
    (2, "Create Campaign Materials", "Design graphics, copy, and other marketing materials",
     "doing", "high", 1, 0, 2),
    (2, "Budget Planning", "Plan and allocate budget for the marketing campaign",
     "todo", "medium", None, 0, 10),
]

# (task, user, content)
DEMO_COMMENTS = [
    (0, 0, "Great progress on the mockup! The color scheme looks perfect."),
    (0, 1, "Thanks! I'll have the final version ready by tomorrow."),
    (4, 1, "The design is coming along nicely. Should we schedule a review meeting?"),
    (7, 0, "Let's focus on social media channels for this campaign."),
]

# (task, user, field, old, new)
DEMO_HISTORY = [
    (1, 2, "status", "doing", "done"),
    (3, 1, "status", "todo", "done"),
    (6, 1, "status", "todo", "done"),
]


def register_cli(app):
    """Attach the TaskHub commands to ``app.cli``."""

    @app.cli.command("create-super-admin")
    @click.option("--email", prompt=True)
    @click.option("--name", prompt=True)
    @click.password_option()
    def create_super_admin_cmd(email, name, password):
        """Create a super_admin account (or promote an existing user)."""
        existing = get_user_by_email(normalize_email(email))
        if existing is not None:
            existing.role = "super_admin"
            db.session.commit()
            click.echo(f"Promoted {existing.email} to super_admin")
            return
        user = build_user(email=email, password=password, name=name, role="super_admin")
        db.session.commit()
        logger.info("Super admin %s created", user.id)
        click.echo(f"Created super_admin {user.email} (id={user.id})")

    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="Drop and recreate all tables first.")
    def seed_demo_cmd(reset):
        """Seed sample users, projects, memberships, tasks and comments."""
        if reset:
            db.drop_all()
            db.create_all()
        elif get_user_by_email(DEMO_USERS[0]["email"]) is not None:
            click.echo("Demo data already present; use --reset to recreate it.")
            return

        counts = seed_demo_data()
        click.echo(
            "Seeded {users} users, {projects} projects, {members} memberships, "
            "{tasks} tasks, {comments} comments".format(**counts)
        )
        click.echo(f"Demo login: {DEMO_USERS[0]['email']} / {DEMO_PASSWORD}")


def seed_demo_data() -> dict:
    """Insert the demo data set in one transaction and return row counts."""
    users = [
        build_user(email=u["email"], password=DEMO_PASSWORD, name=u["name"], role=u["role"])
        for u in DEMO_USERS
    ]

    projects = []
    for p in DEMO_PROJECTS:
        project = Project(name=p["name"], description=p["description"], owner_id=users[p["owner"]].id)
        db.session.add(project)
        projects.append(project)
    db.session.flush()

    for project_idx, user_idx, role, can_edit, can_delete in DEMO_MEMBERSHIPS:
        db.session.add(ProjectMember(
            project_id=projects[project_idx].id,
            user_id=users[user_idx].id,
            role=role,
            can_edit=can_edit,
            can_delete=can_delete,
        ))

    today = date.today()
    tasks = []
    for project_idx, title, description, status, priority, assignee, creator, due_in in DEMO_TASKS:
        task = Task(
            title=title,
            description=description,
            status=status,
            priority=priority,
            project_id=projects[project_idx].id,
            assigned_to=users[assignee].id if assignee is not None else None,
            created_by=users[creator].id,
            due_date=today + timedelta(days=due_in),
        )
        db.session.add(task)
        tasks.append(task)
    db.session.flush()

    for task_idx, user_idx, content in DEMO_COMMENTS:
        db.session.add(Comment(task_id=tasks[task_idx].id, user_id=users[user_idx].id, content=content))

    for task_idx, user_idx, field, old, new in DEMO_HISTORY:
        write_task_history(
            task_id=tasks[task_idx].id,
            changed_by=users[user_idx].id,
            field_name=field,
            old_value=old,
            new_value=new,
        )

    db.session.commit()
    return {
        "users": len(users),
        "projects": len(projects),
        "members": len(DEMO_MEMBERSHIPS),
        "tasks": len(tasks),
        "comments": len(DEMO_COMMENTS),
    }
