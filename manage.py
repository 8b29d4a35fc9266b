import click
from flask.cli import with_appcontext
from models import db
from models.teachers import Teacher
from classes.ranking_manager import RankingManager


@click.command("create-db")
@with_appcontext
def create_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("Database tables created.")


@click.command("create-teacher")
@click.argument("email")
@click.password_option()
@click.option("--full-name", default=None)
@with_appcontext
def create_teacher(email, password, full_name):
    """Create a teacher account, or reset the password of an existing one."""
    email = email.strip().lower()
    teacher = Teacher.query.filter_by(email=email).first()
    if teacher:
        teacher.set_password(password)
        click.echo(f"Password updated for {email}.")
    else:
        teacher = Teacher(email=email, full_name=full_name)
        teacher.set_password(password)
        db.session.add(teacher)
        click.echo(f"Teacher {email} created.")
    db.session.commit()


@click.command("recalculate-rankings")
@with_appcontext
def recalculate_rankings():
    """Rank every quiz whose deadline has passed."""
    ranked = RankingManager.recalculate_all()
    click.echo(f"Rankings calculated for {ranked} quizzes.")


def register_commands(app):
    app.cli.add_command(create_db)
    app.cli.add_command(create_teacher)
    app.cli.add_command(recalculate_rankings)
