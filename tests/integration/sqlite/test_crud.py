"""
Tests for create_table, insert, update and delete against SQLite.
"""
import datetime
import time as time_mod

import pytest
from minorm import Hooks, IntegrityError, IntegrityViolationError
from minorm import MissingIdentifierError, NoColumnsError, UniqueViolation
from minorm import UpdateFailedError
from minorm.columns import boolean, date, integer, primary_integer, primary_uuid
from minorm.columns import string, time, timestamp


class TestCreateTable:

    def test_idempotent(self, sl_db, user_columns):
        assert sl_db.create_table('users', user_columns) is True
        schema = sl_db.query("SELECT name, sql FROM sqlite_master WHERE tbl_name = 'USERS'")

        assert sl_db.create_table('users', user_columns) is True
        assert sl_db.query("SELECT name, sql FROM sqlite_master WHERE tbl_name = 'USERS'") == schema

    def test_index_created(self, users_db):
        rows = users_db.query("SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'USERS'")
        assert 'IDX_USERS_EMAIL' in [row['name'] for row in rows]

    def test_drop_table(self, users_db, user_columns):
        assert users_db.drop_table('users') is True
        assert users_db.drop_table('users') is True
        assert users_db.query("SELECT name FROM sqlite_master WHERE name = 'USERS'") == []


class TestInsert:

    def test_returns_stored_row(self, users_db, user_columns, user_values):
        row = users_db.insert('users', user_columns, user_values)

        assert row['id'] == 1
        assert row['email'] == 'donald.duck@disney.com'
        assert row['active'] is True
        assert isinstance(row['created_at'], datetime.datetime)
        assert row['updated_at'] is None
        assert row.firstname == 'Donald'

    def test_find_by_id_matches_insert(self, users_db, user_columns, user_values):
        row = users_db.insert('users', user_columns, user_values)
        assert users_db.find_by_id('users', user_columns, row['id']) == row

    def test_unknown_keys_dropped(self, users_db, user_columns, user_values):
        row = users_db.insert('users', user_columns, {**user_values, 'nickname': 'Don'})
        assert 'nickname' not in row
        assert 'NICKNAME' not in row

    def test_mixed_case_keys(self, users_db, user_columns, user_values):
        values = {**user_values, 'FirstName': 'Daisy'}
        del values['firstname']
        row = users_db.insert('users', user_columns, values)
        assert row['firstname'] == 'Daisy'

    def test_created_at_supplied(self, users_db, user_columns, user_values):
        created = datetime.datetime(2024, 2, 29, 13, 45, 10, 123456)
        row = users_db.insert('users', user_columns, {**user_values, 'created_at': created})
        assert row['created_at'] == created.replace(microsecond=123000)

    def test_required_column_missing(self, users_db, user_columns, user_values):
        values = dict(user_values)
        del values['password']
        with pytest.raises(IntegrityViolationError):
            users_db.insert('users', user_columns, values)

    def test_no_known_values(self, sl_db, email_columns):
        sl_db.create_table('accounts', email_columns)
        with pytest.raises(NoColumnsError):
            sl_db.insert('accounts', email_columns, {'nickname': 'x'})

    def test_unique_violation(self, sl_db, email_columns):
        """Second insert of the same email violates the unique constraint"""
        sl_db.create_table('accounts', email_columns)
        row = sl_db.insert('accounts', email_columns, {'email': 'a@b.com'})
        assert row == {'id': 1, 'email': 'a@b.com'}

        with pytest.raises(IntegrityViolationError) as excinfo:
            sl_db.insert('accounts', email_columns, {'email': 'a@b.com'})
        assert excinfo.value.operation == 'insert'
        assert isinstance(excinfo.value, UniqueViolation)
        assert isinstance(excinfo.value, IntegrityError)

    def test_uuid_primary_key(self, sl_db):
        columns = [primary_uuid('id'), string('name')]
        sl_db.create_table('tokens', columns)

        row = sl_db.insert('tokens', columns, {'name': 'a'})
        assert isinstance(row['id'], str)
        assert len(row['id']) == 36
        assert sl_db.find_by_id('tokens', columns, row['id']) == row

    def test_table_without_primary_key(self, sl_db):
        columns = [string('line'), integer('level')]
        sl_db.create_table('log', columns)
        row = sl_db.insert('log', columns, {'line': 'hello', 'level': 2})
        assert row == {'line': 'hello', 'level': 2}

    def test_defaults_applied(self, sl_db):
        columns = [
            primary_integer('id'),
            string('name'),
            boolean('active', default=True),
            timestamp('seen_at', auto=True),
        ]
        sl_db.create_table('visits', columns)
        row = sl_db.insert('visits', columns, {'name': 'a'})
        assert row['active'] is True
        assert isinstance(row['seen_at'], datetime.datetime)

    @pytest.mark.skipif(not hasattr(time_mod, 'tzset'), reason='needs time.tzset')
    def test_created_at_uses_database_clock(self, sl_db, non_utc_timezone):
        """Stamped and database-defaulted timestamps agree off UTC"""
        columns = [
            primary_integer('id'),
            string('name'),
            timestamp('created_at'),
            timestamp('seen_at', auto=True),
        ]
        sl_db.create_table('visits', columns)
        row = sl_db.insert('visits', columns, {'name': 'a'})
        assert abs(row['created_at'] - row['seen_at']) < datetime.timedelta(seconds=5)

    def test_date_and_time_round_trip(self, sl_db):
        columns = [primary_integer('id'), date('born'), time('alarm')]
        sl_db.create_table('clocks', columns)
        row = sl_db.insert('clocks', columns, {
            'born': datetime.date(2000, 1, 31),
            'alarm': datetime.time(6, 30),
        })
        assert row['born'] == datetime.date(2000, 1, 31)
        assert row['alarm'] == datetime.time(6, 30)

    def test_aware_timestamp_round_trip(self, sl_db):
        columns = [primary_integer('id'), timestamp('at')]
        sl_db.create_table('events', columns)
        at = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)
        row = sl_db.insert('events', columns, {'at': at})
        assert row['at'] == at


class TestUpdate:

    def test_update(self, users_db, user_columns, user_values):
        inserted = users_db.insert('users', user_columns, user_values)
        row = users_db.update('users', user_columns, {'id': inserted['id'], 'active': False})

        assert row['active'] is False
        assert row['email'] == inserted['email']
        assert row['created_at'] == inserted['created_at']
        assert isinstance(row['updated_at'], datetime.datetime)

    def test_missing_identifier(self, users_db, user_columns):
        with pytest.raises(MissingIdentifierError):
            users_db.update('users', user_columns, {'active': False})

    def test_unknown_identifier(self, users_db, user_columns):
        with pytest.raises(UpdateFailedError):
            users_db.update('users', user_columns, {'id': 42, 'active': False})

    def test_unique_violation(self, users_db, user_columns, user_values):
        users_db.insert('users', user_columns, user_values)
        other = users_db.insert('users', user_columns, {**user_values, 'email': 'daisy@disney.com'})
        with pytest.raises(IntegrityViolationError) as excinfo:
            users_db.update('users', user_columns, {'id': other['id'], 'email': user_values['email']})
        assert excinfo.value.operation == 'update'


class TestDelete:

    def test_delete_once(self, users_db, user_columns, user_values):
        row = users_db.insert('users', user_columns, user_values)
        assert users_db.delete('users', row['id']) is True
        assert users_db.delete('users', row['id']) is False
        assert users_db.find_by_id('users', user_columns, row['id']) is None

    def test_delete_by_declared_key(self, sl_db):
        columns = [primary_uuid('uid'), string('name')]
        sl_db.create_table('tokens', columns)
        row = sl_db.insert('tokens', columns, {'name': 'a'})
        assert sl_db.delete('tokens', row['uid'], columns=columns) is True


class TestHooks:

    def test_insert_hooks(self, users_db, user_columns, user_values, recording_hooks):
        values = {**user_values, 'email': 'Donald.Duck@Disney.com'}
        row = users_db.insert('users', user_columns, values, hooks=recording_hooks)

        assert row['email'] == 'donald.duck@disney.com'
        names = [name for name, _ in recording_hooks.calls]
        assert names == ['before_insert', 'after_insert']
        assert recording_hooks.calls[1][1] == row

    def test_update_hooks(self, users_db, user_columns, user_values, recording_hooks):
        inserted = users_db.insert('users', user_columns, user_values)
        row = users_db.update('users', user_columns, {'id': inserted['id']}, hooks=recording_hooks)

        assert row['lastname'] == 'Updated'
        assert [name for name, _ in recording_hooks.calls] == ['before_update', 'after_update']

    def test_delete_hooks(self, users_db, user_columns, user_values, recording_hooks):
        row = users_db.insert('users', user_columns, user_values)
        users_db.delete('users', row['id'], hooks=recording_hooks)
        users_db.delete('users', row['id'], hooks=recording_hooks)

        assert recording_hooks.calls == [
            ('before_delete', row['id']),
            ('after_delete', True),
            ('before_delete', row['id']),
            ('after_delete', False),
        ]

    def test_after_hook_errors_propagate(self, users_db, user_columns, user_values):
        class Failing(Hooks):
            def after_insert(self, row):
                raise RuntimeError('notify failed')

        with pytest.raises(RuntimeError, match='notify failed'):
            users_db.insert('users', user_columns, user_values, hooks=Failing())
        assert len(users_db.find_many('users', user_columns)) == 1


if __name__ == '__main__':
    __import__('pytest').main([__file__])
