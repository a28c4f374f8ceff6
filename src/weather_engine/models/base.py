from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by the location and weather tables.

    Unique constraints are named explicitly on each model because the
    insert-or-fetch helpers in the database service rely on them.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
