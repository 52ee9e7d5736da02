from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from microlog_app import create_app
from microlog_app.config import TestingConfig
from microlog_app.extensions import db
from microlog_app.models import User


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded_users(app):
    admin = User(name="maria", fullname="Maria Admin", role="admin")
    admin.set_password("adminpass1")
    tech = User(name="nikos", fullname="Nikos Tech", role="user")
    tech.set_password("techpass1")
    db.session.add_all([admin, tech])
    db.session.commit()
    return {
        "admin": {"id": admin.id, "name": admin.name, "password": "adminpass1"},
        "tech": {"id": tech.id, "name": tech.name, "password": "techpass1"},
    }


def login(client, username, password):
    return client.post("/auth/login", json={"username": username, "password": password})


@pytest.fixture
def tech_client(client, seeded_users):
    resp = login(client, seeded_users["tech"]["name"], seeded_users["tech"]["password"])
    assert resp.status_code == 200
    return client


@pytest.fixture
def admin_client(client, seeded_users):
    resp = login(client, seeded_users["admin"]["name"], seeded_users["admin"]["password"])
    assert resp.status_code == 200
    return client


def sheet_payload(**overrides):
    payload = {
        "table_name": "Line A",
        "table_date": "2025-01-01",
        "table_description": "Morning batch",
        "incubation_profile": ["enterobacteriacea", "yeasts_molds"],
        "rows": [
            {
                "product": "Feta",
                "code": "F-100",
                "expiration_date": "2025-03-01",
                "enterobacteriacea": "1,5",
                "tmc_30": "1200",
                "yeasts_molds": "12",
                "bacillus": "<1",
            },
            {
                "product": "Yogurt",
                "code": "Y-200",
                "enterobacteriacea": "0",
                "yeasts_molds": "55",
                "bacillus": "2",
                "comments": "retest",
            },
        ],
    }
    payload.update(overrides)
    return payload
