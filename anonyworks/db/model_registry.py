"""
Import every model module here once so that Base.metadata is fully populated.

Add a single import line here whenever you create a new model module.
"""

from anonyworks.db.base import Base  # the shared Declarative Base

# --- import all your model modules (side-effect: tables register on Base.metadata)
from anonyworks.models import auth_models  # noqa
from anonyworks.models import otp  # noqa
from anonyworks.models import pit  # noqa

# expose for Alembic
metadata = Base.metadata
