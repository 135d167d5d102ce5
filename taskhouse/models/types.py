import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# JSONB no Postgres, JSON simples no SQLite (dev/testes).
JSONType = JSONB().with_variant(sa.JSON(), "sqlite")
