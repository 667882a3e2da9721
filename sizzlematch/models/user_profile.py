from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .instants import Instant


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class DateRange(BaseModel):
    """Arrival/departure pair; arrival must be strictly before departure."""

    arrival: Instant
    departure: Instant

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.arrival >= self.departure:
            raise ValueError("Arrival date must be before departure date")
        return self


class StoredTravelDates(BaseModel):
    """Travel dates as read back from the document store, possibly incomplete."""

    model_config = ConfigDict(extra="allow")

    arrival: Optional[Instant] = None
    departure: Optional[Instant] = None


class ProfileFields(BaseModel):
    """Writable profile fields. Every field is optional so a save can be partial."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    age: Optional[int] = Field(default=None, ge=18, le=30)
    gender: Optional[Gender] = None
    travel_dates: Optional[DateRange] = Field(default=None, alias="travelDates")
    bio: Optional[str] = Field(default=None, max_length=600)
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture", max_length=2048)

    def to_document(self) -> Dict[str, Any]:
        """Fields explicitly provided by the caller, keyed by their stored names.

        ``None`` values are kept so the document store can unset them.
        """

        return self.model_dump(by_alias=True, exclude_unset=True)


class UserProfile(BaseModel):
    """Canonical representation of a profile document stored in MongoDB."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    uid: str
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    travel_dates: Optional[StoredTravelDates] = Field(default=None, alias="travelDates")
    bio: Optional[str] = None
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture")
    created_at: Optional[Instant] = Field(default=None, alias="createdAt")
    updated_at: Optional[Instant] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "UserProfile":
        data = {key: value for key, value in doc.items() if key != "_id"}
        data.setdefault("uid", str(doc.get("_id")))
        return cls.model_validate(data)

    def travel_range(self) -> Optional[DateRange]:
        dates = self.travel_dates
        if dates is None or dates.arrival is None or dates.departure is None:
            return None
        try:
            return DateRange(arrival=dates.arrival, departure=dates.departure)
        except PydanticValidationError:
            return None

    def is_complete(self, require_picture: bool = True) -> bool:
        if not (self.name or "").strip():
            return False
        if self.age is None or not (self.gender or "").strip():
            return False
        if self.travel_range() is None:
            return False
        if require_picture and not (self.profile_picture or "").strip():
            return False
        return True


class ProfileView(UserProfile):
    """Profile as returned to clients, with display helpers."""

    formatted_dates: Optional[Dict[str, str]] = Field(default=None, alias="formattedDates")
    age_description: Optional[str] = Field(default=None, alias="ageDescription")

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "ProfileView":
        data = profile.model_dump(by_alias=True)
        dates = profile.travel_dates
        if dates is not None:
            data["formattedDates"] = {
                "arrival": format_date(dates.arrival),
                "departure": format_date(dates.departure),
            }
        if profile.age:
            data["ageDescription"] = f"{profile.age} years old"
        return cls.model_validate(data)


class SaveProfileRequest(ProfileFields):
    """Body of a profile save: writable fields plus an optional new picture reference."""

    image_ref: Optional[str] = Field(default=None, alias="imageRef")

    def profile_fields(self) -> ProfileFields:
        return ProfileFields.model_validate(
            self.model_dump(by_alias=True, exclude_unset=True, exclude={"image_ref"})
        )


class OverlapRequest(BaseModel):
    a: DateRange
    b: DateRange


class PictureRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_ref: str = Field(alias="imageRef", min_length=1)


def format_date(value: Any) -> str:
    """YYYY-MM-DD for an instant, or ``"Invalid date"``."""

    try:
        return value.date().isoformat()
    except AttributeError:
        return "Invalid date"


def _first_message(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid profile"
    message = str(errors[0].get("msg") or "Invalid profile")
    return message.removeprefix("Value error, ")


def coerce_profile_fields(fields: Any) -> ProfileFields:
    """Accept a ProfileFields or a mapping; raise ValidationError on bad input."""

    if isinstance(fields, ProfileFields):
        return fields
    try:
        return ProfileFields.model_validate(dict(fields or {}))
    except PydanticValidationError as exc:
        raise ValidationError(_first_message(exc)) from exc
    except (TypeError, ValueError) as exc:
        raise ValidationError("Profile fields must be a mapping") from exc


def validate_user_profile(data: Mapping[str, Any]) -> ProfileFields:
    """Validate a complete profile submission with user-facing messages."""

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")

    try:
        age = int(data.get("age"))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        age = None
    if age is None or age < 18 or age > 30:
        raise ValidationError("Age must be between 18 and 30")

    if data.get("gender") not in [g.value for g in Gender]:
        raise ValidationError("Gender must be male or female")

    travel = data.get("travelDates")
    if isinstance(travel, BaseModel):
        travel = travel.model_dump()
    if not travel or not isinstance(travel, Mapping):
        raise ValidationError("Travel dates are required")
    if not travel.get("arrival") or not travel.get("departure"):
        raise ValidationError("Both arrival and departure dates are required")

    picture = data.get("profilePicture")
    if picture is not None and not isinstance(picture, str):
        raise ValidationError("Profile picture must be a valid URL string")

    return coerce_profile_fields({**data, "age": age})


__all__ = [
    "DateRange",
    "Gender",
    "OverlapRequest",
    "PictureRequest",
    "ProfileFields",
    "ProfileView",
    "SaveProfileRequest",
    "StoredTravelDates",
    "UserProfile",
    "coerce_profile_fields",
    "format_date",
    "validate_user_profile",
]
