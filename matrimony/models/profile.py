from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import UUID4, BaseModel, ConfigDict, Field, HttpUrl


class MaritalStatus(str, Enum):
    SINGLE = "single"
    DIVORCED = "divorced"
    WIDOWED = "widowed"
    SEPARATED = "separated"


class Education(str, Enum):
    HIGH_SCHOOL = "high_school"
    DIPLOMA = "diploma"
    BACHELORS = "bachelors"
    MASTERS = "masters"
    PHD = "phd"
    PROFESSIONAL = "professional"
    OTHER = "other"


class MotherTongue(str, Enum):
    SINHALA = "sinhala"
    TAMIL = "tamil"
    ENGLISH = "english"
    OTHER = "other"


class BodyType(str, Enum):
    SLIM = "slim"
    AVERAGE = "average"
    ATHLETIC = "athletic"
    HEAVY = "heavy"


class Complexion(str, Enum):
    FAIR = "fair"
    WHEATISH = "wheatish"
    DUSKY = "dusky"
    DARK = "dark"


class EmploymentType(str, Enum):
    EMPLOYED = "employed"
    SELF_EMPLOYED = "self_employed"
    BUSINESS = "business"
    STUDENT = "student"
    UNEMPLOYED = "unemployed"


class ImmigrationStatus(str, Enum):
    CITIZEN = "citizen"
    PERMANENT_RESIDENT = "permanent_resident"
    WORK_VISA = "work_visa"
    STUDENT_VISA = "student_visa"
    OTHER = "other"


class FamilyType(str, Enum):
    NUCLEAR = "nuclear"
    JOINT = "joint"


class FamilyValues(str, Enum):
    TRADITIONAL = "traditional"
    MODERATE = "moderate"
    LIBERAL = "liberal"


class DietaryPreference(str, Enum):
    VEGETARIAN = "vegetarian"
    NON_VEGETARIAN = "non_vegetarian"
    VEGAN = "vegan"
    JAIN_VEGETARIAN = "jain_vegetarian"


class SmokingHabits(str, Enum):
    NEVER = "never"
    OCCASIONALLY = "occasionally"
    REGULARLY = "regularly"


class DrinkingHabits(str, Enum):
    NEVER = "never"
    SOCIALLY = "socially"
    OCCASIONALLY = "occasionally"
    REGULARLY = "regularly"


Occupation = Annotated[str, Field(min_length=2, max_length=100)]
HeightCm = Annotated[int, Field(ge=120, le=250)]
WeightKg = Annotated[int, Field(ge=30, le=200)]
Income = Annotated[int, Field(ge=0)]
LongText = Annotated[str, Field(max_length=1000)]
ShortText = Annotated[str, Field(max_length=100)]
Photos = Annotated[list[HttpUrl], Field(max_length=5)]


class WorkLocation(BaseModel):
    """Where the user works."""

    model_config = ConfigDict(frozen=True)

    country: Annotated[str, Field(min_length=2, max_length=100)] | None = None
    state: Annotated[str, Field(min_length=2, max_length=100)] | None = None
    city: Annotated[str, Field(min_length=2, max_length=100)] | None = None


class Profile(BaseModel):
    """Matrimonial profile owned by a single user.

    Every matrimonial field is optional; ``completion_percentage`` and
    ``is_complete`` are derived from them and are recomputed by the profile
    service on every write.

    Attributes:
        profile_id: Unique identifier for the profile
        user_id: ID of the owning user
        completion_percentage: Derived 0-100 completion score
        is_complete: Derived, whether the score clears the completion threshold
        is_public: Whether the profile may be shown to other users
        is_verified: Whether an administrator verified the profile
        created_at: When the profile was created
        updated_at: When the profile was last updated
    """

    model_config = ConfigDict(frozen=True)

    profile_id: UUID4
    user_id: UUID4

    # Basic
    marital_status: MaritalStatus | None = None
    education: Education | None = None
    occupation: Occupation | None = None
    height: HeightCm | None = None
    mother_tongue: MotherTongue | None = None

    # Personal
    about_me: LongText | None = None
    family_details: LongText | None = None
    work_location: WorkLocation | None = None
    immigration_status: ImmigrationStatus | None = None
    income: Income | None = None
    body_type: BodyType | None = None
    weight: WeightKg | None = None
    complexion: Complexion | None = None
    employment_type: EmploymentType | None = None
    known_languages: list[str] = Field(default_factory=list)
    caste: ShortText | None = None
    sub_caste: ShortText | None = None

    # Lifestyle
    dietary_preference: DietaryPreference | None = None
    family_values: FamilyValues | None = None
    smoking_habits: SmokingHabits | None = None
    drinking_habits: DrinkingHabits | None = None
    partner_expectations: LongText | None = None
    hobbies: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    family_type: FamilyType | None = None
    willing_to_relocate: bool = False

    # Media and visibility
    primary_photo_url: HttpUrl | None = None
    profile_photos: Photos = Field(default_factory=list)
    is_public: bool = False

    # Derived and administrative
    completion_percentage: Annotated[int, Field(ge=0, le=100)] = 0
    is_complete: bool = False
    is_verified: bool = False
    created_at: datetime
    updated_at: datetime
