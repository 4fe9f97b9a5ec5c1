"""Shared fixtures: app on in-memory SQLite, test client, image bytes."""

import io

import pytest
from PIL import Image

from app import create_app
from models import db


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "PRODUCT_IMAGE_DIR": str(tmp_path / "products"),
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_image():
    """Build an in-memory image file of the given size and format."""

    def _make(width, height, fmt="JPEG", mode="RGB"):
        img = Image.new(mode, (width, height), color=0)
        buf = io.BytesIO()
        img.save(buf, fmt)
        buf.seek(0)
        return buf

    return _make
