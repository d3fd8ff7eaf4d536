from smart_circular.core.database import Base
from smart_circular.models.models import AccountRow, ReportRow, RevokedTokenRow

__all__ = ["Base", "AccountRow", "ReportRow", "RevokedTokenRow"]
