"""
Approval request schemas for request/response validation.
"""

from pydantic import Field, model_validator
from typing import Optional, List, Dict, Any, Union
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from app.models.request_common import RequestStatus, RequestFamily
from app.models.leave_request import LeaveType
from app.models.payment_request import PaymentRequestType
from app.models.material_request import MaterialRequestType
from app.schemas.common import CamelModel


class UrgencyLevel(str, Enum):
    """Urgency values accepted on payment and material requests."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class AttachmentCategory(str, Enum):
    """Where a medical claim file is filed."""
    RECEIPT = "receipt"
    MEDICAL_REPORT = "medical_report"


class Attachment(CamelModel):
    """Metadata for a file already stored by the file store."""
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=1024)
    file_type: Optional[str] = Field(None, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)
    uploaded_at: Optional[datetime] = None
    category: Optional[AttachmentCategory] = None


# Create payloads

class LeaveRequestCreate(CamelModel):
    """Schema for submitting a leave request."""
    leave_type: LeaveType
    from_date: date
    to_date: date
    reason: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode='after')
    def validate_dates(self) -> 'LeaveRequestCreate':
        """Validate that to_date is not before from_date."""
        if self.to_date < self.from_date:
            raise ValueError('To date must be on or after from date')
        return self


class PaymentRequestCreate(CamelModel):
    """Schema for submitting an advance or other payment request."""
    request_type: PaymentRequestType = PaymentRequestType.ADVANCE_PAYMENT
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: str = Field("SGD", min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=50)
    urgency: UrgencyLevel = UrgencyLevel.NORMAL
    required_date: Optional[date] = None
    justification: Optional[str] = Field(None, max_length=2000)
    bank_details: Optional[Dict[str, Any]] = None


class MedicalClaimCreate(CamelModel):
    """Schema for submitting a medical claim."""
    claim_type: str = Field("MEDICAL_REIMBURSEMENT", max_length=50)
    claim_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: str = Field("SGD", min_length=3, max_length=3)
    treatment_date: date
    treatment_type: Optional[str] = Field(None, max_length=100)
    hospital_clinic: Optional[str] = Field(None, max_length=255)
    doctor_name: Optional[str] = Field(None, max_length=255)
    diagnosis: Optional[str] = Field(None, max_length=2000)
    description: Optional[str] = Field(None, max_length=2000)
    is_work_related: bool = False
    work_incident_id: Optional[int] = None


class MaterialRequestCreate(CamelModel):
    """Schema for submitting a material or tool request."""
    project_id: int = Field(..., gt=0)
    item_name: str = Field(..., min_length=1, max_length=255)
    item_category: str = Field("other", max_length=100)
    quantity: float = Field(..., gt=0)
    unit: str = Field("pieces", max_length=50)
    urgency: UrgencyLevel = UrgencyLevel.NORMAL
    required_date: Optional[date] = None
    purpose: Optional[str] = Field(None, max_length=2000)
    justification: Optional[str] = Field(None, max_length=2000)
    specifications: Optional[str] = Field(None, max_length=2000)
    estimated_cost: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)


# Responses

class RequestResponseBase(CamelModel):
    """Fields shared by every request family."""
    id: int
    family: RequestFamily
    company_id: int
    employee_id: int
    status: RequestStatus
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    remarks: Optional[str] = None
    attachments: List[Dict[str, Any]] = []
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None

    # Filled in for supervisor views
    employee_name: Optional[str] = None
    project_id: Optional[int] = None
    project_name: Optional[str] = None


class LeaveRequestResponse(RequestResponseBase):
    """Schema for leave request response."""
    family: RequestFamily = RequestFamily.LEAVE
    leave_type: LeaveType
    from_date: date
    to_date: date
    total_days: int
    reason: Optional[str] = None


class PaymentRequestResponse(RequestResponseBase):
    """Schema for payment request response."""
    family: RequestFamily = RequestFamily.ADVANCE
    request_type: PaymentRequestType
    amount: Decimal
    currency: str
    description: Optional[str] = None
    category: Optional[str] = None
    urgency: str
    required_date: Optional[date] = None
    justification: Optional[str] = None
    bank_details: Optional[Dict[str, Any]] = None
    approved_amount: Optional[Decimal] = None
    processed_at: Optional[datetime] = None


class MedicalClaimResponse(RequestResponseBase):
    """Schema for medical claim response."""
    family: RequestFamily = RequestFamily.MEDICAL
    claim_type: str
    claim_amount: Decimal
    currency: str
    treatment_date: date
    treatment_type: Optional[str] = None
    hospital_clinic: Optional[str] = None
    doctor_name: Optional[str] = None
    diagnosis: Optional[str] = None
    description: Optional[str] = None
    is_work_related: bool = False
    work_incident_id: Optional[int] = None
    receipts: List[Dict[str, Any]] = []
    medical_reports: List[Dict[str, Any]] = []
    approved_amount: Optional[Decimal] = None
    processed_at: Optional[datetime] = None


class MaterialRequestResponse(RequestResponseBase):
    """Schema for material/tool request response."""
    family: Optional[RequestFamily] = None
    request_type: MaterialRequestType
    project_id: int
    item_name: str
    item_category: str
    quantity: float
    unit: str
    urgency: str
    required_date: Optional[date] = None
    purpose: Optional[str] = None
    justification: Optional[str] = None
    specifications: Optional[str] = None
    estimated_cost: Optional[Decimal] = None
    approved_quantity: Optional[float] = None
    pickup_location: Optional[str] = None
    pickup_instructions: Optional[str] = None
    pickup_contact_person: Optional[str] = None
    pickup_contact_phone: Optional[str] = None
    fulfilled_at: Optional[datetime] = None

    @model_validator(mode='after')
    def set_family(self) -> 'MaterialRequestResponse':
        """Derive the family from the stored request type."""
        if self.family is None:
            self.family = (
                RequestFamily.TOOL
                if self.request_type == MaterialRequestType.TOOL
                else RequestFamily.MATERIAL
            )
        return self


RequestResponse = Union[
    LeaveRequestResponse,
    PaymentRequestResponse,
    MedicalClaimResponse,
    MaterialRequestResponse,
]


class RequestCreatedResponse(CamelModel):
    """Schema returned after a successful submission."""
    request_id: int
    request_type: RequestFamily
    status: RequestStatus = RequestStatus.PENDING


class MyRequestsResponse(CamelModel):
    """Schema for a worker's requests across every family."""
    items: List[RequestResponse]
    total: int
    limit: int
    offset: int


class AttachmentsAdd(CamelModel):
    """Schema for attaching stored files to a request."""
    files: List[Attachment] = Field(..., min_length=1)


class CancelRequest(CamelModel):
    """Schema for cancelling a pending request."""
    reason: Optional[str] = Field(None, max_length=500)


class RemarksAdd(CamelModel):
    """Schema for appending a remark."""
    text: str = Field(..., min_length=1, max_length=2000)


class RequestStatusResponse(CamelModel):
    """Schema for a request's status after a worker action."""
    request_id: int
    family: RequestFamily
    status: RequestStatus
