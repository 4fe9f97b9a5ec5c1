# ── app.py ──────────────────────────────────────────────────────────────────
import json
import logging
import os

import click
from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS

import day_store
from feedback_blueprint import feedback_bp
from hours_blueprint import hours_bp
from models import db
from upload_blueprint import upload_bp

load_dotenv()


# ── CONFIG ────────────────────────────────────────────────────────────────
def default_database_uri() -> str:
    if os.environ.get("DATABASE_URL"):
        return os.environ["DATABASE_URL"]
    db_user = os.environ.get("DB_USER", "pulizie")
    db_pass = os.environ.get("DB_PASS", "")
    db_name = os.environ.get("DB_NAME", "pulizie")
    socket = os.environ.get("INSTANCE_UNIX_SOCKET", "/cloudsql/pulizie")
    # SQLAlchemy URI (pymysql + unix socket)
    return f"mysql+pymysql://{db_user}:{db_pass}@/{db_name}?unix_socket={socket}"


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=os.environ.get("SECRET_KEY", "dev-secret"),
        SQLALCHEMY_DATABASE_URI=default_database_uri(),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        PRODUCT_IMAGE_DIR=os.environ.get(
            "PRODUCT_IMAGE_DIR", os.path.join(app.root_path, "assets", "img", "products")),
        PRODUCT_IMAGE_URL_PREFIX=os.environ.get("PRODUCT_IMAGE_URL_PREFIX", "assets/img/products"),
        APP_TIMEZONE=os.environ.get("APP_TIMEZONE", "Europe/Rome"),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
        # the upload route answers the 5MB rule itself, keep the hard cap above it
        MAX_CONTENT_LENGTH=16 * 1024 * 1024,
    )
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    db.init_app(app)
    CORS(app, resources={r"/api/upload-product-image": {"origins": "*"}}, send_wildcard=True)

    app.register_blueprint(hours_bp, url_prefix="/api/hours")
    app.register_blueprint(feedback_bp, url_prefix="/api/feedback")
    app.register_blueprint(upload_bp)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    register_commands(app)

    if app.config.get("CREATE_TABLES", True):
        with app.app_context():
            db.create_all()
    return app


# ── CLI ───────────────────────────────────────────────────────────────────
def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create the database tables."""
        db.create_all()
        click.echo("Tables created.")

    @app.cli.command("import-legacy")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    def import_legacy(path):
        """Import a JSON export of the old per-employee day documents."""
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise click.ClickException("Expected an object keyed by employee name.")
        db.create_all()
        written = day_store.import_legacy_export(data)
        click.echo(f"Imported {written} days.")


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 7060))
    create_app().run(debug=True, port=port)
