"""CLI commands for the Actas API."""

import click

from actas_api.db.base import Base
from actas_api.db.session import SessionLocal, engine
from actas_api.models import Acta, Participant, User
from actas_api.models.user import ROLE_ADMIN, ROLE_USER
from actas_api.security.link_signer import get_link_signer
from actas_api.settings import get_settings


@click.group()
def cli():
    """Actas API CLI."""
    pass


@cli.command("init-db")
def init_db():
    """Create all tables (development; use alembic elsewhere)."""
    Base.metadata.create_all(bind=engine)
    click.echo("✓ Tables created.")


@cli.command("add-user")
@click.option("--name", required=True)
@click.option("--email", required=True)
@click.option("--role", type=click.Choice([ROLE_USER, ROLE_ADMIN]), default=ROLE_USER, show_default=True)
def add_user(name: str, email: str, role: str):
    """Add an internal user to the directory."""
    db = SessionLocal()
    try:
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            click.echo(f"✗ A user with email {email} already exists.", err=True)
            raise SystemExit(1)
        user = User(name=name.strip(), email=email, role=role, is_active=True)
        db.add(user)
        db.commit()
        click.echo(f"✓ User {user.id} created ({role}).")
    finally:
        db.close()


@cli.command("approval-link")
@click.argument("acta_id", type=int)
@click.argument("participant_id", type=int)
def approval_link(acta_id: int, participant_id: int):
    """Print the signed approval link of a participant (re-sending by hand)."""
    db = SessionLocal()
    try:
        participant = (
            db.query(Participant)
            .join(Acta)
            .filter(Participant.id == participant_id, Acta.id == acta_id)
            .first()
        )
        if not participant:
            click.echo(f"✗ Participant {participant_id} is not part of acta {acta_id}.", err=True)
            raise SystemExit(1)
        signer = get_link_signer()
        click.echo(signer.approval_link(get_settings().public_base_url_clean, acta_id, participant_id))
    finally:
        db.close()


@cli.command("issue-token")
@click.argument("user_id", type=int)
def issue_token(user_id: int):
    """Mint a session token for a directory user (development)."""
    from actas_api.auth.session import issue_session_token

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
        if not user:
            click.echo(f"✗ User {user_id} not found or inactive.", err=True)
            raise SystemExit(1)
        click.echo(issue_session_token(user.id, user.role))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
