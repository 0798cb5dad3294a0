from pydantic import BaseModel, ConfigDict, HttpUrl

from matrimony.models.profile import (
    BodyType,
    Complexion,
    DietaryPreference,
    DrinkingHabits,
    Education,
    EmploymentType,
    FamilyType,
    FamilyValues,
    HeightCm,
    ImmigrationStatus,
    Income,
    LongText,
    MaritalStatus,
    MotherTongue,
    Occupation,
    Photos,
    ShortText,
    SmokingHabits,
    WeightKg,
    WorkLocation,
)
from matrimony.models.user import ProfileStage


class ProfileInput(BaseModel):
    """Base for profile payloads; unknown fields are rejected."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class BasicProfileStage(ProfileInput):
    """Stage 1 payload. Every field is required."""

    marital_status: MaritalStatus
    education: Education
    occupation: Occupation
    height: HeightCm
    mother_tongue: MotherTongue


class PersonalProfileStage(ProfileInput):
    """Stage 2 payload."""

    about_me: LongText | None = None
    family_details: LongText | None = None
    work_location: WorkLocation | None = None
    immigration_status: ImmigrationStatus | None = None
    income: Income | None = None
    body_type: BodyType | None = None
    weight: WeightKg | None = None
    complexion: Complexion | None = None
    employment_type: EmploymentType | None = None
    known_languages: list[str] | None = None


class LifestyleProfileStage(ProfileInput):
    """Stage 3 payload."""

    dietary_preference: DietaryPreference | None = None
    family_values: FamilyValues | None = None
    smoking_habits: SmokingHabits | None = None
    drinking_habits: DrinkingHabits | None = None
    partner_expectations: LongText | None = None
    willing_to_relocate: bool | None = None
    hobbies: list[str] | None = None
    interests: list[str] | None = None
    caste: ShortText | None = None
    sub_caste: ShortText | None = None
    family_type: FamilyType | None = None


class MediaProfileStage(ProfileInput):
    """Stage 4 payload."""

    primary_photo_url: HttpUrl | None = None
    profile_photos: Photos | None = None
    is_public: bool | None = None


STAGE_SCHEMAS: dict[ProfileStage, type[ProfileInput]] = {
    ProfileStage.BASIC: BasicProfileStage,
    ProfileStage.PERSONAL: PersonalProfileStage,
    ProfileStage.LIFESTYLE: LifestyleProfileStage,
    ProfileStage.MEDIA: MediaProfileStage,
}


class ProfileUpdate(
    PersonalProfileStage, LifestyleProfileStage, MediaProfileStage
):
    """Field-level profile edit. Only the fields that are sent are changed.

    Sending ``null`` clears a field.
    """

    marital_status: MaritalStatus | None = None
    education: Education | None = None
    occupation: Occupation | None = None
    height: HeightCm | None = None
    mother_tongue: MotherTongue | None = None

