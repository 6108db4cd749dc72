"""CLI tools for ProbateDesk operations."""

import click

from probatedesk.db.enums import Role
from probatedesk.db.models import User
from probatedesk.db.session import SessionLocal
from probatedesk.services import reminder_service


@click.group()
def cli():
    """ProbateDesk CLI tools."""
    pass


@cli.command()
def send_reminders():
    """
    Send every reminder that is due and not yet sent.

    Intended for cron (e.g. hourly). Safe to re-run: a reminder is stamped
    sent only after its email goes out.

    Example:
        probatedesk send-reminders
    """
    db = SessionLocal()
    try:
        sent = reminder_service.send_due_reminders(db)
        click.echo(f"✓ Sent {sent} reminder(s)")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option("--name", default=None, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.OPS.value,
    show_default=True,
)
def create_user(email: str, name: str | None, role: str):
    """
    Create a portal user (typically ops staff).

    Example:
        probatedesk create-user --email "staff@probatedesk.com" --role ops
    """
    db = SessionLocal()
    try:
        email = email.strip().lower()
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            click.echo(f"❌ User already exists: {email}")
            return

        user = User(email=email, display_name=name, role=role)
        db.add(user)
        db.commit()

        click.echo(f"✓ Created user {email}")
        click.echo(f"  ID: {user.id}")
        click.echo(f"  Role: {role}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        probatedesk revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
