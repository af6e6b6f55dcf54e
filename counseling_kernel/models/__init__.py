"""ORM models.  Importing this package registers every table on Base.metadata."""

from counseling_kernel.models.counseling_request import CounselingRequestModel

__all__ = ["CounselingRequestModel"]
