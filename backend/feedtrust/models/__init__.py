"""SQLAlchemy models package.

All ORM classes are imported here so mapper configuration and Alembic
autogenerate see the complete metadata regardless of import order.
"""

from feedtrust.models import (  # noqa: F401
    account_trust_policy,
    source_calibration,
)
