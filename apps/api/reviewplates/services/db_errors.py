from sqlalchemy.exc import IntegrityError

_UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_MESSAGE_MARKERS = (
    "unique constraint failed",
    "duplicate key",
    "unique constraint",
    "already exists",
)


def is_unique_violation(err: IntegrityError) -> bool:
    """Tell a unique-key rejection apart from other integrity failures.

    Unique violations are an expected control-flow branch for idempotent
    inserts; NOT NULL or foreign key failures are genuine errors.
    """
    orig = err.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate is not None:
        return sqlstate == _UNIQUE_VIOLATION_SQLSTATE

    message = str(orig if orig is not None else err).lower()
    return any(marker in message for marker in _UNIQUE_MESSAGE_MARKERS)
