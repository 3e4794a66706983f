from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length


class _JsonForm(FlaskForm):
    # fed from request.get_json(); the API is token-authenticated
    class Meta:
        csrf = False

    @classmethod
    def from_json(cls, payload):
        if not isinstance(payload, dict):
            payload = {}
        flat = {k: str(v) for k, v in payload.items()
                if v is not None and not isinstance(v, (dict, list, bool))}
        return cls(formdata=MultiDict(flat))

    def first_error(self) -> str:
        for field, errs in self.errors.items():
            if errs:
                return f"{field}: {errs[0]}"
        return "Invalid input"


class RegisterForm(_JsonForm):
    name = StringField("Full name", validators=[DataRequired(), Length(max=120)])
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=320)])
    password = PasswordField(
        "Password",
        validators=[DataRequired(), Length(min=6, max=200, message="Password must be at least 6 characters.")]
    )


class LoginForm(_JsonForm):
    email = StringField("Email", validators=[DataRequired(), Length(max=320)])
    password = PasswordField("Password", validators=[DataRequired(), Length(max=200)])


class PasswordChangeForm(_JsonForm):
    current_password = PasswordField("Current password", name="currentPassword",
                                     validators=[DataRequired()])
    new_password = PasswordField(
        "New password", name="newPassword",
        validators=[DataRequired(), Length(min=6, max=200, message="Password must be at least 6 characters.")]
    )
