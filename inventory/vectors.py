"""
Vector distance expressions for catalog embeddings.

PostgreSQL ranks with pgvector's ``<=>`` operator. SQLite, used for local
development and the test suite, gets an equivalent SQL function registered
on each new connection so the same queryset runs on both backends.
"""

import numpy as np
from pgvector import Vector
from pgvector.django import CosineDistance as PgCosineDistance

SQLITE_COSINE_FUNCTION = 'vector_cosine_distance'


class CosineDistance(PgCosineDistance):
    """``embedding <=> query`` on PostgreSQL, a registered function elsewhere"""

    def as_sqlite(self, compiler, connection, **extra_context):
        return self.as_sql(
            compiler,
            connection,
            function=SQLITE_COSINE_FUNCTION,
            arg_joiner=', ',
            **extra_context,
        )


def cosine_distance(a, b):
    """
    1 - cosine similarity of two equal-width vectors.

    Returns None when either side has no direction (zero norm).
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Vector widths differ: {a.shape[0]} != {b.shape[0]}")

    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0.0:
        return None
    return float(1.0 - np.dot(a, b) / norm)


def sqlite_cosine_distance(stored, query):
    """
    SQL function body for SQLite.

    Rows whose stored text is not a vector of the query's width yield NULL
    and drop out of ranking instead of failing the whole query.
    """
    if stored is None or query is None:
        return None
    try:
        return cosine_distance(Vector.from_text(stored).to_numpy(), Vector.from_text(query).to_numpy())
    except (TypeError, ValueError):
        return None


def register_sqlite_functions(connection):
    connection.connection.create_function(
        SQLITE_COSINE_FUNCTION, 2, sqlite_cosine_distance, deterministic=True
    )
