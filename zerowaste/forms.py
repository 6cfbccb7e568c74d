# zerowaste/forms.py
# Forms validate JSON request bodies (Flask-WTF reads request.get_json()).

from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, TextAreaField, SelectField, Field
from wtforms.validators import DataRequired, Email, Length, Optional, StopValidation
from wtforms.widgets import TextInput

from .models import ROLES, URGENCY_LEVELS
from .utils import normalize_tags


def strip_filter(value):
    return value.strip() if isinstance(value, str) else value


class NotBlank:
    """Lets a field be left out of the body, but not sent as blank or null."""
    field_flags = {"optional": True}

    def __init__(self, message=None):
        self.message = message

    def __call__(self, form, field):
        if not field.raw_data:
            field.errors[:] = []
            raise StopValidation()
        value = field.raw_data[0]
        if value is None or (isinstance(value, str) and not value.strip()):
            raise StopValidation(self.message or field.gettext("This field cannot be blank."))


class TagListField(Field):
    """Accepts a JSON list of tags (or a comma-separated string)."""
    widget = TextInput()

    def process_formdata(self, valuelist):
        self.data = normalize_tags(valuelist)

    def _value(self):
        return ', '.join(self.data or [])


class APIForm(FlaskForm):
    class Meta:
        csrf = False  # JSON API, session cookie only

    def patch(self, payload):
        """Cleaned values for the fields actually present in ``payload``."""
        return {
            attr: field.data
            for attr, field in self._fields.items()
            if field.name in payload
        }


# -------------------------
# Auth Forms
# -------------------------
class RegistrationForm(APIForm):
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=255)], filters=[strip_filter])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6)])
    name = StringField('Name', validators=[DataRequired(), Length(max=255)], filters=[strip_filter])
    phone = StringField('Phone', validators=[DataRequired(), Length(max=50)], filters=[strip_filter])
    user_type = SelectField('Account Type', name='userType', choices=[(r, r.upper()) for r in ROLES], validators=[DataRequired()])
    organization_type = StringField('Organization Type', name='organizationType', validators=[DataRequired(), Length(max=255)])
    address = TextAreaField('Address', validators=[DataRequired()])
    description = TextAreaField('Description', validators=[Optional(), Length(max=2000)])


class LoginForm(APIForm):
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=255)], filters=[strip_filter])
    password = PasswordField('Password', validators=[DataRequired()])


# -------------------------
# Food Listing Forms
# -------------------------
URGENCY_CHOICES = [(level, level.title()) for level in URGENCY_LEVELS]


class FoodListingForm(APIForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=255)], filters=[strip_filter])
    description = TextAreaField('Description', validators=[DataRequired()])
    quantity = StringField('Quantity', validators=[DataRequired(), Length(max=255)])
    location = StringField('Location', validators=[DataRequired(), Length(max=255)], filters=[strip_filter])
    food_type = StringField('Food Type', name='foodType', validators=[DataRequired(), Length(max=255)])
    urgency = SelectField('Urgency', choices=URGENCY_CHOICES, default='medium')
    expires_in = StringField('Expires In', name='expiresIn', validators=[DataRequired(), Length(max=255)])
    contact_info = StringField('Contact Info', name='contactInfo', validators=[DataRequired(), Length(max=255)])
    special_instructions = TextAreaField('Special Instructions', name='specialInstructions', validators=[Optional(), Length(max=2000)])
    tags = TagListField('Tags', default=list)


class FoodListingUpdateForm(FoodListingForm):
    """Partial update: fields may be omitted, supplied ones must not be blank."""
    title = StringField('Title', validators=[NotBlank(), Length(max=255)], filters=[strip_filter])
    description = TextAreaField('Description', validators=[NotBlank()])
    quantity = StringField('Quantity', validators=[NotBlank(), Length(max=255)])
    location = StringField('Location', validators=[NotBlank(), Length(max=255)], filters=[strip_filter])
    food_type = StringField('Food Type', name='foodType', validators=[NotBlank(), Length(max=255)])
    urgency = SelectField('Urgency', choices=URGENCY_CHOICES, validators=[NotBlank()])
    expires_in = StringField('Expires In', name='expiresIn', validators=[NotBlank(), Length(max=255)])
    contact_info = StringField('Contact Info', name='contactInfo', validators=[NotBlank(), Length(max=255)])


class StatusUpdateForm(APIForm):
    claim_status = StringField('Claim Status', name='claimStatus', validators=[DataRequired()], filters=[strip_filter])


# -------------------------
# Chat Form
# -------------------------
class MessageForm(APIForm):
    text = TextAreaField('Message', validators=[DataRequired(), Length(max=2000)])
    receiver_id = StringField('Receiver', name='receiverId', validators=[DataRequired()])
    listing_id = StringField('Listing', name='listingId', validators=[DataRequired()])
