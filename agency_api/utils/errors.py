# agency_api/utils/errors.py

"""
Maps database errors to user-facing (Dutch) HTTP errors.

PostgreSQL reports SQLSTATE codes (``23505`` unique, ``23503`` foreign key, ``23502`` not null,
``42P01`` undefined table); SQLite only reports messages, so both are checked.
"""

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

NOT_NULL_VIOLATION = "23502"
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"
UNDEFINED_TABLE = "42P01"


def store_error_code(error: SQLAlchemyError) -> str | None:
    """SQLSTATE of the driver error, derived from the message when the driver has none."""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return str(code)

    message = str(orig or error).lower()
    if "unique constraint" in message or "duplicate key" in message:
        return UNIQUE_VIOLATION
    if "not null constraint" in message or "violates not-null" in message:
        return NOT_NULL_VIOLATION
    if "foreign key constraint" in message:
        return FOREIGN_KEY_VIOLATION
    if "check constraint" in message:
        return CHECK_VIOLATION
    if "no such table" in message or ("relation" in message and "does not exist" in message):
        return UNDEFINED_TABLE
    return None


def map_store_error(
    error: SQLAlchemyError,
    table: str | None = None,
    duplicate_message: str = "Dit record bestaat al.",
    default_message: str = "Er is iets misgegaan bij het opslaan.",
) -> HTTPException:
    """
    Builds the HTTPException for a failed database call.

    :param error: exception raised by SQLAlchemy
    :param table: table involved, named in the migration hint
    :param duplicate_message: message for a unique violation
    :param default_message: message for everything not recognised
    """
    code = store_error_code(error)

    if code == UNIQUE_VIOLATION:
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=duplicate_message)
    if code == FOREIGN_KEY_VIOLATION:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Ongeldige data ontvangen. Het gekoppelde record bestaat niet.",
        )
    if code == NOT_NULL_VIOLATION:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Een verplicht veld ontbreekt.")
    if code == CHECK_VIOLATION:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ongeldige waarde ontvangen.")
    if code == UNDEFINED_TABLE:
        name = f'"{table}" ' if table else ""
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database tabel {name}bestaat niet. Voer de migratie uit (init_db) en probeer opnieuw.",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=default_message)


async def raise_store_error(request, error: SQLAlchemyError, target: str, table: str | None = None, **messages):
    """Rolls back, logs the underlying message and raises the mapped HTTPException."""
    db = getattr(request.state, "db", None)
    if db is not None:
        await db.rollback()
    await request.app.state.log.log_error(
        target, "Database error", {"table": table, "code": store_error_code(error), "error": str(error)}
    )
    raise map_store_error(error, table, **messages) from error
