"""
Database models.
Import all models here to ensure they're registered with Base.
"""

from app.models.employee import Employee, EmployeeStatus
from app.models.project import Project
from app.models.counter import Counter
from app.models.request_common import RequestStatus, RequestFamily
from app.models.leave_request import LeaveRequest, LeaveType
from app.models.payment_request import PaymentRequest, PaymentRequestType
from app.models.medical_claim import MedicalClaim
from app.models.material_request import MaterialRequest, MaterialRequestType

__all__ = [
    "Employee",
    "EmployeeStatus",
    "Project",
    "Counter",
    "RequestStatus",
    "RequestFamily",
    "LeaveRequest",
    "LeaveType",
    "PaymentRequest",
    "PaymentRequestType",
    "MedicalClaim",
    "MaterialRequest",
    "MaterialRequestType",
]
