"""
Shared test fixtures and configuration for pytest
"""
from unittest.mock import MagicMock

import pytest

from app import create_app
from core.database_models import Item, ItemStatus, db
from core.email_validator import DeliverableEmailValidator


@pytest.fixture
def mx_resolver():
    """Stub DNS resolver that reports one MX record for every domain"""
    resolver = MagicMock()
    resolver.resolve.return_value = ['10 mx.example.org.']
    return resolver


@pytest.fixture
def email_validator(mx_resolver):
    return DeliverableEmailValidator(resolver=mx_resolver)


@pytest.fixture
def app(tmp_path, email_validator):
    """Application bound to a temporary SQLite database"""
    app = create_app('testing', {
        'DATABASE_URL': f"sqlite:///{tmp_path / 'items.db'}",
        'DNS_NAMESERVERS': ['127.0.0.1'],
    })
    app.email_validator = email_validator

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def repository(app):
    return app.item_repository


@pytest.fixture
def make_item(repository):
    """Persist an item straight through the store"""
    counter = {'n': 0}

    def _make(name=None, status=ItemStatus.NEW.value, email=None, description=None):
        counter['n'] += 1
        n = counter['n']
        return repository.save(Item(
            name=name or f"item-{n}",
            description=description,
            status=status,
            email=email or f"user{n}@example.org",
        ))

    return _make
