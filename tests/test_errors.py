from sqlalchemy.exc import IntegrityError, OperationalError

from agency_api.utils.errors import map_store_error


class PgError(Exception):
    def __init__(self, pgcode):
        super().__init__(f"error {pgcode}")
        self.pgcode = pgcode


def test_sqlite_unique_violation_is_conflict():
    error = IntegrityError("INSERT INTO leads", {}, Exception("UNIQUE constraint failed: leads.email"))
    mapped = map_store_error(error, "leads", duplicate_message="Bestaat al")
    assert mapped.status_code == 409
    assert mapped.detail == "Bestaat al"


def test_postgres_codes():
    assert map_store_error(IntegrityError("x", {}, PgError("23505"))).status_code == 409
    assert map_store_error(IntegrityError("x", {}, PgError("23503"))).status_code == 400
    assert map_store_error(IntegrityError("x", {}, PgError("23514"))).status_code == 400


def test_missing_table_points_to_migration():
    mapped = map_store_error(OperationalError("SELECT", {}, Exception("no such table: customers")), "customers")
    assert mapped.status_code == 500
    assert '"customers"' in mapped.detail
    assert "init_db" in mapped.detail


def test_unknown_error_uses_default_message():
    mapped = map_store_error(OperationalError("x", {}, Exception("disk I/O error")), default_message="Mislukt")
    assert mapped.status_code == 500
    assert mapped.detail == "Mislukt"


def test_not_null_violation_is_bad_request():
    sqlite = IntegrityError("UPDATE leads", {}, Exception("NOT NULL constraint failed: leads.status"))
    assert map_store_error(sqlite, "leads").status_code == 400
    assert map_store_error(IntegrityError("x", {}, PgError("23502"))).status_code == 400
