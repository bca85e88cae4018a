"""Column types that work on both SQLite and Postgres."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON text elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")
