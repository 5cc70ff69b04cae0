from jobbooster.extensions import db, bcrypt
from jobbooster.models import User, Profile
from datetime import datetime

import click

DEMO_USERS = [
    {"name": "Demo Candidate", "email": "candidate@example.com", "password": "password123"},
    {"name": "Demo Reviewer", "email": "reviewer@example.com", "password": "password123"},
]


def seed():
    click.echo("Seeding users...")

    created = 0
    for entry in DEMO_USERS:
        # prevent duplicates
        if User.query.filter_by(email=entry["email"]).first():
            continue

        user = User(
            name=entry["name"],
            email=entry["email"],
            password=bcrypt.generate_password_hash(entry["password"]).decode("utf-8"),
            created_at=datetime.utcnow(),
        )
        db.session.add(user)
        db.session.flush()
        db.session.add(Profile(
            user_id=user.id,
            email=user.email,
            full_name=user.name,
            preferences={},
            gdpr_consent=True,
            consent_date=datetime.utcnow(),
            consent_version="1.0",
        ))
        created += 1

    db.session.commit()
    click.echo(f"Users seeded: {created} new")
    return created
