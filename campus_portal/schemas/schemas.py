"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Field bounds here are the write-side constraints: nothing reaches MongoDB
without passing through one of these models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
)


def _naive_utc(value: datetime) -> datetime:
    """Stored datetimes are naive UTC; aware inputs are converted."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


UtcDatetime = Annotated[datetime, AfterValidator(_naive_utc)]


class Schema(BaseModel):
    """Base for stored payloads: enums are kept as their plain values."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    faculty = "faculty"
    admin = "admin"
    placement_officer = "placement_officer"


class Department(str, Enum):
    computer = "Computer Engineering"
    mechanical = "Mechanical Engineering"
    entc = "E&TC Engineering"


class Industry(str, Enum):
    technology = "Technology"
    manufacturing = "Manufacturing"
    consulting = "Consulting"
    finance = "Finance"
    healthcare = "Healthcare"
    education = "Education"
    other = "Other"


class CompanySize(str, Enum):
    startup = "Startup"
    small = "Small"
    medium = "Medium"
    large = "Large"
    enterprise = "Enterprise"


class PositionType(str, Enum):
    full_time = "Full-time"
    internship = "Internship"
    contract = "Contract"
    part_time = "Part-time"


class PositionLevel(str, Enum):
    entry = "Entry"
    junior = "Junior"
    mid = "Mid"
    senior = "Senior"
    lead = "Lead"


class Benefit(str, Enum):
    health_insurance = "Health Insurance"
    dental_insurance = "Dental Insurance"
    vision_insurance = "Vision Insurance"
    life_insurance = "Life Insurance"
    retirement = "401k"
    stock_options = "Stock Options"
    bonus = "Bonus"
    other = "Other"


class RoundType(str, Enum):
    online_test = "Online Test"
    technical_interview = "Technical Interview"
    hr_interview = "HR Interview"
    group_discussion = "Group Discussion"
    case_study = "Case Study"
    other = "Other"


class RoundStatus(str, Enum):
    scheduled = "Scheduled"
    completed = "Completed"
    passed = "Passed"
    failed = "Failed"


class PlacementStatus(str, Enum):
    applied = "Applied"
    shortlisted = "Shortlisted"
    interview_scheduled = "Interview Scheduled"
    interview_completed = "Interview Completed"
    offer_received = "Offer Received"
    offer_accepted = "Offer Accepted"
    offer_declined = "Offer Declined"
    rejected = "Rejected"


class TrainingCategory(str, Enum):
    technical_skills = "Technical Skills"
    soft_skills = "Soft Skills"
    interview_preparation = "Interview Preparation"
    aptitude = "Aptitude"
    coding = "Coding"
    communication = "Communication"
    leadership = "Leadership"
    other = "Other"


class TrainingType(str, Enum):
    workshop = "Workshop"
    seminar = "Seminar"
    online_course = "Online Course"
    bootcamp = "Bootcamp"
    certification = "Certification"
    mock_interview = "Mock Interview"
    practice_session = "Practice Session"


class TrainingLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"
    all_levels = "All Levels"


class TrainingStatus(str, Enum):
    draft = "Draft"
    published = "Published"
    enrollment_open = "Enrollment Open"
    enrollment_closed = "Enrollment Closed"
    in_progress = "In Progress"
    completed = "Completed"
    cancelled = "Cancelled"


class EnrollmentStatus(str, Enum):
    enrolled = "Enrolled"
    completed = "Completed"
    dropped = "Dropped"
    on_hold = "On Hold"


# Statuses that hold a seat in capacity.current_enrolled
ACTIVE_ENROLLMENT_STATUSES = (
    EnrollmentStatus.enrolled.value,
    EnrollmentStatus.completed.value,
    EnrollmentStatus.on_hold.value,
)


class ChatContext(str, Enum):
    general = "general"
    placement = "placement"
    higher_studies = "higher-studies"
    training = "training"


class AnalyticsPeriod(str, Enum):
    week = "7d"
    month = "30d"
    quarter = "90d"
    year = "1y"


# ============================================================
# COMMON RESPONSE ENVELOPE
# ============================================================

class ApiResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None


# ============================================================
# AUTH SCHEMAS
# Registration is one variant per role, picked by "role".
# ============================================================

def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class RegistrationBase(Schema):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = Field(None, pattern=r"^\d{10}$")

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return _strip(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class StudentRegistration(RegistrationBase):
    role: Literal["student"]
    student_id: str = Field(..., min_length=1, max_length=32)
    department: Department
    year: int = Field(..., ge=1, le=4)

    @field_validator("student_id", mode="before")
    @classmethod
    def strip_student_id(cls, v):
        return _strip(v)


class FacultyRegistration(RegistrationBase):
    role: Literal["faculty"]
    department: Department


class StaffRegistration(RegistrationBase):
    role: Literal["admin", "placement_officer"]


RegisterRequest = Annotated[
    Union[StudentRegistration, FacultyRegistration, StaffRegistration],
    Field(discriminator="role"),
]


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


# ============================================================
# USER SCHEMAS
# ============================================================

class NotificationPreferences(Schema):
    email: bool = True
    sms: bool = False
    push: bool = True


class PrivacyPreferences(Schema):
    profile_visible: bool = True
    contact_visible: bool = False


class Preferences(Schema):
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    privacy: PrivacyPreferences = Field(default_factory=PrivacyPreferences)


class UserUpdate(Schema):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^\d{10}$")
    department: Optional[Department] = None
    year: Optional[int] = Field(None, ge=1, le=4)
    profile_picture: Optional[str] = None
    preferences: Optional[Preferences] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return _strip(v)


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserRoleUpdate(Schema):
    role: UserRole


# ============================================================
# PLACEMENT SCHEMAS
# ============================================================

class CompanyInfo(Schema):
    name: str = Field(..., min_length=1, max_length=100)
    logo: Optional[str] = None
    website: Optional[str] = None
    industry: Industry = Industry.other
    size: CompanySize = CompanySize.medium


class PositionInfo(Schema):
    title: str = Field(..., min_length=1, max_length=100)
    type: PositionType = PositionType.full_time
    level: PositionLevel = PositionLevel.entry


class PackageInfo(Schema):
    ctc: float = Field(..., ge=0)
    base: Optional[float] = Field(None, ge=0)
    currency: str = "INR"
    benefits: List[Benefit] = []


class LocationInfo(Schema):
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    country: str = "India"
    remote: bool = False


class Timeline(Schema):
    applied_date: UtcDatetime = Field(default_factory=_utcnow)
    interview_date: Optional[UtcDatetime] = None
    offer_date: Optional[UtcDatetime] = None
    joining_date: Optional[UtcDatetime] = None


class ProcessRound(Schema):
    name: str = Field(..., min_length=1)
    type: RoundType
    date: Optional[UtcDatetime] = None
    status: RoundStatus = RoundStatus.scheduled
    feedback: Optional[str] = Field(None, max_length=500)


class SelectionProcess(Schema):
    rounds: List[ProcessRound] = []


class PlacementCreate(Schema):
    # Staff may file a record on a student's behalf
    student: Optional[str] = None
    company: CompanyInfo
    position: PositionInfo
    package: PackageInfo
    location: LocationInfo
    timeline: Timeline = Field(default_factory=Timeline)
    process: SelectionProcess = Field(default_factory=SelectionProcess)
    status: PlacementStatus = PlacementStatus.applied
    skills: List[str] = []
    notes: Optional[str] = Field(None, max_length=1000)


class PlacementUpdate(Schema):
    company: Optional[CompanyInfo] = None
    position: Optional[PositionInfo] = None
    package: Optional[PackageInfo] = None
    location: Optional[LocationInfo] = None
    timeline: Optional[Timeline] = None
    process: Optional[SelectionProcess] = None
    status: Optional[PlacementStatus] = None
    skills: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=1000)


# ============================================================
# TRAINING SCHEMAS
# ============================================================

class Instructor(Schema):
    name: str = Field(..., min_length=1)
    designation: Optional[str] = None
    company: Optional[str] = None
    expertise: List[str] = []
    bio: Optional[str] = Field(None, max_length=500)


class TrainingSession(Schema):
    date: UtcDatetime
    start_time: str
    end_time: str
    topic: str
    description: Optional[str] = None


class TrainingSchedule(Schema):
    start_date: UtcDatetime
    end_date: UtcDatetime
    duration: int = Field(..., ge=1, description="Total hours")
    sessions: List[TrainingSession] = []

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("schedule.end_date must not be before schedule.start_date")
        return self


class TrainingCapacity(Schema):
    max_students: int = Field(..., ge=1)
    waitlist: int = Field(0, ge=0)


class TrainingRequirements(Schema):
    prerequisites: List[str] = []
    materials: List[str] = []
    software: List[str] = []
    departments: List[Department] = []
    years: List[int] = []


class TrainingPricing(Schema):
    is_free: bool = True
    amount: float = Field(0, ge=0)
    currency: str = "INR"


class EnrollmentWindow(Schema):
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    # Only honoured when a bound is missing; otherwise derived from the bounds
    is_open: bool = False


class TrainingCreate(Schema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    category: TrainingCategory
    type: TrainingType
    level: TrainingLevel = TrainingLevel.all_levels
    instructor: Instructor
    schedule: TrainingSchedule
    capacity: TrainingCapacity
    requirements: TrainingRequirements = Field(default_factory=TrainingRequirements)
    pricing: TrainingPricing = Field(default_factory=TrainingPricing)
    status: TrainingStatus = TrainingStatus.draft
    enrollment: EnrollmentWindow = Field(default_factory=EnrollmentWindow)
    tags: List[str] = []
    is_featured: bool = False


class TrainingUpdate(Schema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    category: Optional[TrainingCategory] = None
    type: Optional[TrainingType] = None
    level: Optional[TrainingLevel] = None
    instructor: Optional[Instructor] = None
    schedule: Optional[TrainingSchedule] = None
    capacity: Optional[TrainingCapacity] = None
    requirements: Optional[TrainingRequirements] = None
    pricing: Optional[TrainingPricing] = None
    status: Optional[TrainingStatus] = None
    enrollment: Optional[EnrollmentWindow] = None
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = None


class EnrollRequest(BaseModel):
    student_id: str = Field(..., min_length=1)


class ProgressUpdate(Schema):
    progress: int = Field(..., ge=0, le=100)
    status: Optional[EnrollmentStatus] = None
    # Identity id of the enrolled student; staff only
    student: Optional[str] = None


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


# ============================================================
# CHATBOT SCHEMAS
# ============================================================

class ChatRequest(Schema):
    message: str = Field(..., min_length=1, max_length=1000)
    context: ChatContext = ChatContext.general

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v):
        return _strip(v)
