"""
Waitlist form validation.

validate_submission() turns an untyped request payload into a WaitlistAnswers
model, or into a ValidationErrors value listing {path, message} pairs so the
caller can render per-field messages. It never raises on bad input.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
)

Role = Literal['golfer', 'fitter_builder', 'creator', 'league_captain', 'retailer_other']
SpendBracket = Literal['<300', '300_750', '750_1500', '1500_3000', '3000_5000', '5000_plus']
Frequency = Literal['never', 'yearly_1_2', 'few_per_year', 'monthly', 'weekly_plus']


class WaitlistAnswers(BaseModel):
    """A validated waitlist application."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')

    role: Role
    share_channels: List[StrictStr]
    learn_channels: List[StrictStr]
    spend_bracket: SpendBracket
    uses: List[StrictStr]
    buy_frequency: Frequency
    share_frequency: Frequency
    display_name: StrictStr = Field(min_length=1)
    city_region: StrictStr = Field(min_length=2)
    email: EmailStr
    terms_accepted: StrictBool = Field(alias='termsAccepted')
    invite_code: Optional[StrictStr] = None
    # Honeypot: real users never see this field. Checked by the submission service.
    contact_phone: Optional[StrictStr] = None

    def to_record(self) -> Dict[str, Any]:
        """Answers as stored on the application row (honeypot dropped)."""
        data = self.model_dump(exclude={'contact_phone'})
        data['email'] = str(self.email).lower()
        return data


@dataclass
class ValidationErrors:
    errors: List[Dict[str, str]] = field(default_factory=list)

    def __bool__(self):
        return bool(self.errors)


def _error_path(loc) -> str:
    return '.'.join(str(part) for part in loc)


def validate_submission(data: Any) -> Union[WaitlistAnswers, ValidationErrors]:
    """Parse raw submission data into WaitlistAnswers or a list of field errors."""
    try:
        return WaitlistAnswers.model_validate(data)
    except ValidationError as e:
        return ValidationErrors(errors=[
            {'path': _error_path(err['loc']), 'message': err['msg']}
            for err in e.errors()
        ])


def honeypot_triggered(answers: WaitlistAnswers) -> bool:
    """True when the hidden contact_phone field was filled in."""
    return bool(answers.contact_phone and answers.contact_phone.strip())
