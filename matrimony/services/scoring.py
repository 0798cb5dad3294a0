import math
from collections.abc import Mapping
from enum import Enum
from fractions import Fraction
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from matrimony.models.profile import Profile
from matrimony.models.user import ProfileStage

COMPLETE_THRESHOLD = 80


class FieldImportance(str, Enum):
    REQUIRED = "required"
    IMPORTANT = "important"
    OPTIONAL = "optional"


class ScoringBucket(BaseModel):
    """A weighted group of profile fields edited together in one stage.

    Attributes:
        name: Bucket name
        stage: Editor stage the fields belong to
        importance: Importance reported for every missing field in the bucket
        weight: Share of the total percentage the bucket is worth
        fields: Profile attribute names in reporting order
    """

    model_config = ConfigDict(frozen=True)

    name: str
    stage: ProfileStage
    importance: FieldImportance
    weight: int
    fields: tuple[str, ...]


BUCKETS: tuple[ScoringBucket, ...] = (
    ScoringBucket(
        name="basic",
        stage=ProfileStage.BASIC,
        importance=FieldImportance.REQUIRED,
        weight=25,
        fields=(
            "marital_status",
            "education",
            "occupation",
            "height",
            "mother_tongue",
        ),
    ),
    ScoringBucket(
        name="personal",
        stage=ProfileStage.PERSONAL,
        importance=FieldImportance.IMPORTANT,
        weight=25,
        fields=(
            "about_me",
            "family_details",
            "work_location",
            "immigration_status",
            "income",
            "body_type",
            "weight",
            "complexion",
            "employment_type",
            "known_languages",
            "caste",
            "sub_caste",
        ),
    ),
    ScoringBucket(
        name="lifestyle",
        stage=ProfileStage.LIFESTYLE,
        importance=FieldImportance.OPTIONAL,
        weight=25,
        fields=(
            "dietary_preference",
            "family_values",
            "smoking_habits",
            "drinking_habits",
            "partner_expectations",
            "hobbies",
            "interests",
            "family_type",
        ),
    ),
    ScoringBucket(
        name="media",
        stage=ProfileStage.MEDIA,
        importance=FieldImportance.IMPORTANT,
        weight=25,
        fields=("primary_photo_url", "profile_photos"),
    ),
)

REQUIRED_FIELDS: tuple[str, ...] = BUCKETS[0].fields

DISPLAY_NAMES: dict[str, str] = {
    "marital_status": "Marital Status",
    "education": "Education",
    "occupation": "Occupation",
    "height": "Height",
    "mother_tongue": "Mother Tongue",
    "about_me": "About Me",
    "family_details": "Family Details",
    "work_location": "Work Location",
    "immigration_status": "Immigration Status",
    "income": "Annual Income",
    "body_type": "Body Type",
    "weight": "Weight",
    "complexion": "Complexion",
    "employment_type": "Employment Type",
    "known_languages": "Known Languages",
    "caste": "Caste",
    "sub_caste": "Sub Caste",
    "dietary_preference": "Dietary Preference",
    "family_values": "Family Values",
    "smoking_habits": "Smoking Habits",
    "drinking_habits": "Drinking Habits",
    "partner_expectations": "Partner Expectations",
    "hobbies": "Hobbies",
    "interests": "Interests",
    "family_type": "Family Type",
    "primary_photo_url": "Primary Photo",
    "profile_photos": "Profile Photos",
}


class FieldGap(BaseModel):
    """A profile field that still needs a value.

    Attributes:
        field: Profile attribute name
        display_name: Label shown to the user
        importance: How much the field matters for matching
        stage: Editor stage where the field can be filled
    """

    model_config = ConfigDict(frozen=True)

    field: str = Field(description="Profile attribute name")
    display_name: str = Field(description="Label shown to the user")
    importance: FieldImportance = Field(description="How much the field matters")
    stage: ProfileStage = Field(description="Editor stage where the field is filled")


class ProfileScore(BaseModel):
    """Completion summary for a profile.

    Attributes:
        percentage: Weighted completion, 0-100
        is_complete: Whether the percentage clears the completion threshold
        missing_fields: Every empty scored field, in bucket order
    """

    model_config = ConfigDict(frozen=True)

    percentage: int = Field(ge=0, le=100, description="Weighted completion")
    is_complete: bool = Field(description="Whether the profile counts as complete")
    missing_fields: list[FieldGap] = Field(
        default_factory=list, description="Empty scored fields in bucket order"
    )


def is_empty(value: Any) -> bool:
    """Whether a field value counts as unfilled.

    ``None``, ``""``, empty sequences and mappings are empty. A nested model
    or mapping whose values are all empty is empty too. Whitespace counts as
    a value.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, BaseModel):
        return all(is_empty(v) for v in value.model_dump().values())
    if isinstance(value, Mapping):
        return all(is_empty(v) for v in value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def score(profile: Profile) -> ProfileScore:
    """Compute the completion score of a profile.

    Args:
        profile: The profile to score

    Returns:
        The percentage, completeness and missing fields
    """
    total = Fraction(0)
    missing: list[FieldGap] = []
    for bucket in BUCKETS:
        filled = 0
        for field in bucket.fields:
            if is_empty(getattr(profile, field)):
                missing.append(
                    FieldGap(
                        field=field,
                        display_name=DISPLAY_NAMES[field],
                        importance=bucket.importance,
                        stage=bucket.stage,
                    )
                )
            else:
                filled += 1
        total += Fraction(filled, len(bucket.fields)) * bucket.weight

    percentage = max(0, min(100, round_half_up(total)))
    return ProfileScore(
        percentage=percentage,
        is_complete=percentage >= COMPLETE_THRESHOLD,
        missing_fields=missing,
    )


def missing_required_fields(profile: Profile) -> list[str]:
    return [field for field in REQUIRED_FIELDS if is_empty(getattr(profile, field))]


def empty_score() -> ProfileScore:
    """Score for a user who has not created a profile yet.

    Only the required fields are reported as missing.
    """
    basic = BUCKETS[0]
    return ProfileScore(
        percentage=0,
        is_complete=False,
        missing_fields=[
            FieldGap(
                field=field,
                display_name=DISPLAY_NAMES[field],
                importance=basic.importance,
                stage=basic.stage,
            )
            for field in basic.fields
        ],
    )
