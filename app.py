import click
from flask import Flask
from flask_migrate import Migrate

from config import Config
from models import db
from models.user import User
from routes import health_bp, auth_bp, privileges_bp, system_bp
from security.bruteforce import init_login_guard
from security.privileges import TROOP_ROLES, validate_privilege_matrix
from utils.auth_context import load_current_user


def create_app(config_object=Config):
    # fail fast on an incomplete role/capability table
    validate_privilege_matrix()

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(privileges_bp)
    app.register_blueprint(system_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Failed-login tracking lives for the life of this process
    init_login_guard(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Give a user the system-wide admin role (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        if user.role != "admin":
            user.role = "admin"
            db.session.commit()

        click.echo(f"{user.email} promoted to admin")

    @app.cli.command("init-db")
    def init_db():
        """Create any missing tables (local development without migrations)."""
        db.create_all()
        click.echo("Database tables created")

    @app.cli.command("check-privileges")
    def check_privileges():
        """Validate the default privilege matrix and print its dimensions."""
        roles, capabilities = validate_privilege_matrix()
        click.echo(f"{roles} roles x {capabilities} capabilities OK")
        click.echo("Roles: " + ", ".join(TROOP_ROLES))


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5002)
