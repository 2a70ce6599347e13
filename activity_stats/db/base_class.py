# activity_stats/db/base_class.py

from sqlalchemy.orm import declarative_base

# Every ledger and rollup model in the service inherits from this class.
Base = declarative_base()
