from flask_wtf import FlaskForm
from wtforms import SubmitField, TextAreaField
from wtforms.validators import InputRequired


class OverviewForm(FlaskForm):
    overview = TextAreaField(
        "Paste your overview / brief below",
        validators=[InputRequired()],
    )
    submit = SubmitField("Generate")
