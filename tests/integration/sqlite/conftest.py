"""
Fixtures for SQLite integration tests.
"""
import time

import pytest
from minorm.columns import primary_integer, string
from minorm.hooks import Hooks


@pytest.fixture
def email_columns():
    """Minimal schema with a unique required email"""
    return [
        primary_integer('id'),
        string('email', 60, required=True, unique=True),
    ]


class RecordingHooks(Hooks):
    """Hooks that record every call and lowercase emails before writes."""

    def __init__(self):
        self.calls = []

    def before_insert(self, values):
        self.calls.append(('before_insert', dict(values)))
        return {**values, 'email': values['email'].lower()}

    def after_insert(self, row):
        self.calls.append(('after_insert', dict(row)))
        row['email'] = 'changed@by.hook'

    def before_update(self, values):
        self.calls.append(('before_update', dict(values)))
        values['lastname'] = 'Updated'

    def after_update(self, row):
        self.calls.append(('after_update', dict(row)))

    def before_delete(self, id):
        self.calls.append(('before_delete', id))

    def after_delete(self, ok):
        self.calls.append(('after_delete', ok))


@pytest.fixture
def recording_hooks():
    return RecordingHooks()


@pytest.fixture
def non_utc_timezone(monkeypatch):
    """Run with a local timezone several hours off UTC"""
    monkeypatch.setenv('TZ', 'EST+05')
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
