from jobbooster.extensions import db
from jobbooster.models import JobData, User

import click

DEMO_JOBS = [
    {
        "title": "Backend Engineer",
        "company": "Acme Analytics",
        "location": "Remote",
        "job_type": "Full-time",
        "content": (
            "We are looking for a Backend Engineer to design and operate Python services. "
            "You will build REST APIs with Flask, model data with SQLAlchemy, and run them on "
            "PostgreSQL or MySQL. Experience with Docker, CI pipelines and LLM APIs is a plus."
        ),
    },
    {
        "title": "Frontend Developer",
        "company": "Nimbus Labs",
        "location": "Paris, France",
        "job_type": "Full-time",
        "content": (
            "Nimbus Labs is hiring a Frontend Developer with strong React and TypeScript skills. "
            "You will ship accessible, responsive interfaces, collaborate with designers, and "
            "write component tests. Three years of professional experience required."
        ),
    },
]


def seed():
    click.echo("Seeding job postings...")

    owner = User.query.filter_by(email="candidate@example.com").first()
    if not owner:
        click.echo("Demo candidate missing, skipping jobs")
        return 0

    created = 0
    for entry in DEMO_JOBS:
        if JobData.query.filter_by(user_id=owner.id, title=entry["title"]).first():
            continue
        db.session.add(JobData(user_id=owner.id, **entry))
        created += 1

    db.session.commit()
    click.echo(f"Jobs seeded: {created} new")
    return created
