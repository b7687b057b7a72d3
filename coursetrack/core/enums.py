from enum import Enum


class Role(str, Enum):
    ACADEMIC_OFFICER = "Academic Officer"
    PROGRAM_CHAIR = "Program Chair"
    PROFESSOR = "Professor"
    STUDENT = "Student"


class AcademicSector(int, Enum):
    FIRST = 1
    SECOND = 2
    SUMMER = 3


class TermStatus(str, Enum):
    ONGOING = "ongoing"
    ENDED = "ended"


class DocumentApproval(str, Enum):
    """Approval state for the outline and report deliverables."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class WorkloadApproval(str, Enum):
    pending = "pending"
    submitted = "submitted"
    approved = "approved"
