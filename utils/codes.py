import uuid
from sqlalchemy import select, func


def random_code(length):
    """Uppercase hexadecimal code, e.g. '3FA9C1'."""
    return uuid.uuid4().hex[:length].upper()


def normalize_code(code):
    if not code:
        return ""
    return code.strip().upper()


def generate_unique_code(connection, column, length):
    """Draw random codes until one is not present in `column`.

    Runs on the raw connection so it is safe to call from a mapper
    `before_insert` hook in the middle of a flush.
    """
    while True:
        code = random_code(length)
        exists_count = connection.execute(
            select(func.count()).select_from(column.table).where(column == code)
        ).scalar()
        if exists_count == 0:
            return code
