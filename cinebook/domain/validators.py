import re
from dataclasses import dataclass

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from cinebook.domain.exceptions import ValidationError


PHONE_RE = re.compile(r"^[0-9]{10}$")

_EMAIL = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class ContactDetails:
    email: str
    phone: str


def validate_contact(email: str, phone: str) -> ContactDetails:
    phone = re.sub(r"[\s-]", "", phone or "")

    try:
        email = _EMAIL.validate_python((email or "").strip())
    except PydanticValidationError:
        raise ValidationError("Please provide a valid email", field="email") from None
    if not PHONE_RE.match(phone):
        raise ValidationError(
            "Please provide a valid 10-digit phone number",
            field="phone",
        )
    return ContactDetails(email=email.lower(), phone=phone)
