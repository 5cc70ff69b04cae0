from .user import User, Profile
from .activity import UserSession, UserActivity
from .cv_data import CvData, CvUpload, ProcessingStatus
from .job_data import JobData
from .generated_content import GeneratedContent

__all__ = [
    "User",
    "Profile",
    "UserSession",
    "UserActivity",
    "CvData",
    "CvUpload",
    "ProcessingStatus",
    "JobData",
    "GeneratedContent"
]
