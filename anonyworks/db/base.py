# anonyworks/db/base.py
from sqlalchemy.orm import DeclarativeBase

# Single Declarative Base used by ALL models.
# Model modules are imported in anonyworks.db.model_registry so their tables
# register with Base.metadata.
class Base(DeclarativeBase):
    pass
