from coursetrack.core.models.program import Program
from coursetrack.core.models.student_year import StudentYear, subjects_student_years
from coursetrack.core.models.subject import Subject
from coursetrack.core.models.user import User
from coursetrack.core.models.term import Term
from coursetrack.core.models.term_subject import TermSubject
from coursetrack.core.models.term_subject_professor import TermSubjectProfessor
from coursetrack.core.models.work_detail import WorkDetail
from coursetrack.core.models.term_subject_audit_log import TermSubjectAuditLog

__all__ = [
    "Program",
    "StudentYear",
    "subjects_student_years",
    "Subject",
    "User",
    "Term",
    "TermSubject",
    "TermSubjectProfessor",
    "WorkDetail",
    "TermSubjectAuditLog",
]
